import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from typing import List

from agritrack.database import get_db, save
from agritrack.errors import NotFound, StorageError
from agritrack.models import Association, Farmer, User
from agritrack.schemas import AssociationCreate, AssociationRead, Message
from agritrack.security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/associations", tags=["Associations"])


def _get_association(db: Session, association_id: int) -> Association:
    association = db.get(Association, association_id)
    if not association:
        raise NotFound("association", association_id)
    return association


@router.get("/", response_model=List[AssociationRead])
def read_associations(db: Session = Depends(get_db)):
    return db.exec(select(Association).order_by(Association.name)).all()


@router.get("/{association_id}", response_model=AssociationRead)
def read_association(association_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _get_association(db, association_id)


@router.post("/", response_model=AssociationRead, status_code=status.HTTP_201_CREATED)
def create_association(
    association: AssociationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return save(db, Association.model_validate(association), "create association")


@router.put("/{association_id}", response_model=AssociationRead)
def update_association(
    association_id: int,
    association_update: AssociationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_association = _get_association(db, association_id)
    db_association.name = association_update.name
    db_association.description = association_update.description
    return save(db, db_association, "update association")


@router.delete("/{association_id}", response_model=Message)
def delete_association(
    association_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_association = _get_association(db, association_id)
    try:
        # Members stay registered, just without an association
        members = db.exec(select(Farmer).where(Farmer.association_id == association_id)).all()
        for farmer in members:
            farmer.association_id = None
            db.add(farmer)
        db.flush()
        db.delete(db_association)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to delete association %s: %s", association_id, e)
        raise StorageError("Failed to delete association", details=str(getattr(e, "orig", None) or e)) from e

    logger.info("Deleted association %s, detached %d farmers", association_id, len(members))
    return Message(message="Association deleted successfully")
