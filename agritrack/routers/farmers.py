from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session, select
from typing import List, Optional

from agritrack.database import get_db, save
from agritrack.errors import InvalidArgument, NotFound
from agritrack.models import Farmer, User, utcnow
from agritrack.routers.yields import get_yield_manager
from agritrack.schemas import DeleteResult, FarmerBase, FarmerCreate, FarmerRead, FarmerUpdate
from agritrack.security import get_current_user
from agritrack.utils import split_full_name
from agritrack.yield_manager import YieldRecordManager

router = APIRouter(prefix="/farmers", tags=["Farmers"])

DEFAULT_IMAGE_URL = "https://res.cloudinary.com/dk41ykxsq/image/upload/default-farmer.png"
DEFAULT_CONTACT = "---"


def _ensure_unique_email(db: Session, email: Optional[str], exclude_id: Optional[int] = None) -> None:
    if not email:
        return
    statement = select(Farmer).where(Farmer.email == email)
    if exclude_id is not None:
        statement = statement.where(Farmer.id != exclude_id)
    if db.exec(statement).first():
        raise InvalidArgument("Email already exists", details=f"Farmer with email {email} already registered")


@router.get("/", response_model=List[FarmerRead])
def read_farmers(
    barangay: Optional[str] = None,
    sector_id: Optional[int] = None,
    skip: int = 0,
    limit: int = Query(100, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    statement = select(Farmer)
    if barangay:
        statement = statement.where(Farmer.barangay == barangay)
    if sector_id is not None:
        statement = statement.where(Farmer.sector_id == sector_id)
    statement = statement.order_by(Farmer.surname, Farmer.firstname).offset(skip).limit(limit)
    return db.exec(statement).all()


@router.get("/{farmer_id}", response_model=FarmerRead)
def read_farmer(farmer_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    farmer = db.get(Farmer, farmer_id)
    if not farmer:
        raise NotFound("farmer", farmer_id)
    return farmer


def new_farmer(db: Session, farmer: FarmerBase) -> Farmer:
    """Build an unsaved farmer row with its name split and contact defaults filled in."""
    _ensure_unique_email(db, farmer.email)

    farmer_data = farmer.model_dump()
    farmer_data["name"] = farmer.name.strip()
    farmer_data.update(split_full_name(farmer.name)._asdict())
    farmer_data["email"] = farmer.email or DEFAULT_CONTACT
    farmer_data["phone"] = farmer.phone or DEFAULT_CONTACT
    farmer_data["image_url"] = farmer.image_url or DEFAULT_IMAGE_URL

    return Farmer.model_validate(farmer_data)


@router.post("/", response_model=FarmerRead, status_code=status.HTTP_201_CREATED)
def create_farmer(farmer: FarmerCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return save(db, new_farmer(db, farmer), "create farmer")


@router.put("/{farmer_id}", response_model=FarmerRead)
def update_farmer(
    farmer_id: int,
    farmer_update: FarmerUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_farmer = db.get(Farmer, farmer_id)
    if not db_farmer:
        raise NotFound("farmer", farmer_id)

    farmer_data = farmer_update.model_dump(exclude_unset=True)
    if not farmer_data:
        raise InvalidArgument("No update data provided")

    if farmer_data.get("email") and farmer_data["email"] != db_farmer.email:
        _ensure_unique_email(db, farmer_data["email"], exclude_id=farmer_id)

    if farmer_data.get("name"):
        farmer_data["name"] = farmer_data["name"].strip()
        farmer_data.update(split_full_name(farmer_data["name"])._asdict())

    for key, value in farmer_data.items():
        setattr(db_farmer, key, value)
    db_farmer.updated_at = utcnow()
    return save(db, db_farmer, "update farmer")


@router.delete("/{farmer_id}", response_model=DeleteResult)
def delete_farmer(
    farmer_id: int,
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    archived = manager.delete_farmer(farmer_id)
    return DeleteResult(message="Farmer deleted successfully", deleted_id=farmer_id, archived_yields=archived)
