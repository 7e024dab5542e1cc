from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select
from typing import List, Optional

from agritrack.database import get_db, save
from agritrack.errors import NotFound
from agritrack.models import Farm, User, YieldRecord, utcnow
from agritrack.routers.yields import get_yield_manager
from agritrack.schemas import DeleteResult, FarmCreate, FarmRead, FarmUpdate
from agritrack.security import get_current_user
from agritrack.yield_manager import YieldRecordManager, farm_product_ids

router = APIRouter(prefix="/farms", tags=["Farms"])


@router.post("/", response_model=FarmRead, status_code=status.HTTP_201_CREATED)
def create_farm(farm: FarmCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    # Farms drawn by farmers stay inactive until staff review them
    farm_status = "Inactive" if (current_user.role or "").lower() == "farmer" else "Active"

    db_farm = Farm(
        farm_name=farm.name,
        vertices=farm.vertices,
        parent_barangay=farm.barangay,
        lake=farm.lake,
        sector_id=farm.sector_id,
        farmer_id=farm.farmer_id,
        products=list(dict.fromkeys(farm.products)),
        area=farm.area,
        description=farm.description,
        status=farm_status,
    )
    return save(db, db_farm, "create farm")


@router.get("/", response_model=List[FarmRead])
def read_farms(
    farmer_id: Optional[int] = None,
    barangay: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    statement = select(Farm)
    if farmer_id is not None:
        statement = statement.where(Farm.farmer_id == farmer_id)
    if barangay:
        statement = statement.where(Farm.parent_barangay == barangay)
    return db.exec(statement.order_by(Farm.farm_name)).all()


@router.get("/by-product/{product_id}", response_model=List[FarmRead])
def read_farms_by_product(product_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    farms = db.exec(select(Farm).order_by(Farm.farm_name)).all()
    return [farm for farm in farms if product_id in farm_product_ids(farm)]


@router.get("/{farm_id}", response_model=FarmRead)
def read_farm(farm_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    farm = db.get(Farm, farm_id)
    if not farm:
        raise NotFound("farm", farm_id)
    return farm


@router.put("/{farm_id}", response_model=FarmRead)
def update_farm(
    farm_id: int,
    farm_update: FarmUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_farm = db.exec(select(Farm).where(Farm.farm_id == farm_id).with_for_update()).first()
    if not db_farm:
        raise NotFound("farm", farm_id)

    # Products still harvested on this farm stay listed
    harvested = db.exec(
        select(YieldRecord.product_id)
        .where(YieldRecord.farm_id == farm_id)
        .distinct()
        .order_by(YieldRecord.product_id)
    ).all()

    db_farm.farm_name = farm_update.name
    db_farm.vertices = farm_update.vertices
    db_farm.parent_barangay = farm_update.barangay
    db_farm.lake = farm_update.lake
    db_farm.sector_id = farm_update.sector_id
    db_farm.farmer_id = farm_update.owner
    db_farm.products = list(dict.fromkeys([*farm_update.products, *harvested]))
    db_farm.area = farm_update.area
    db_farm.description = farm_update.description
    db_farm.updated_at = utcnow()
    return save(db, db_farm, "update farm")


@router.delete("/{farm_id}", response_model=DeleteResult)
def delete_farm(
    farm_id: int,
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    archived = manager.delete_farm(farm_id)
    return DeleteResult(
        message=f"Farm with ID {farm_id} deleted successfully",
        deleted_id=farm_id,
        archived_yields=archived,
    )
