import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from typing import List, Optional

from agritrack.database import get_db, save
from agritrack.errors import InvalidArgument, NotFound, PermissionDenied, StorageError
from agritrack.models import PRIVILEGED_ROLES, Farmer, User
from agritrack.schemas import DeleteResult, UserCreate, UserRead, UserUpdate
from agritrack.security import get_current_user, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _ensure_unique_login(db: Session, firebase_uid: Optional[str] = None, email: Optional[str] = None, exclude_id=None):
    if firebase_uid and db.exec(select(User).where(User.firebase_uid == firebase_uid)).first():
        raise InvalidArgument("User already registered", details=f"Firebase account {firebase_uid} already has a login")
    if email:
        statement = select(User).where(User.email == email)
        if exclude_id is not None:
            statement = statement.where(User.id != exclude_id)
        if db.exec(statement).first():
            raise InvalidArgument("Email already in use", details=f"User with email {email} already registered")


def _with_farmer(db: Session, user: User) -> UserRead:
    user_read = UserRead.model_validate(user)
    farmer = db.exec(select(Farmer).where(Farmer.user_id == user.id)).first()
    user_read.farmer_id = farmer.id if farmer else None
    return user_read


@router.get("/", response_model=List[UserRead])
def read_users(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Every login, newest first, with the farmer profile each one is linked to.
    """
    if (current_user.role or "").lower() not in PRIVILEGED_ROLES:
        raise PermissionDenied("Only admin and staff users can list accounts", details="Insufficient permissions")
    users = db.exec(select(User).order_by(User.created_at.desc(), User.id.desc())).all()
    return [_with_farmer(db, user) for user in users]


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(user: UserCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_admin(current_user, "create new accounts")
    _ensure_unique_login(db, firebase_uid=user.firebase_uid, email=user.email)

    farmer = None
    if user.farmer_id is not None:
        farmer = db.get(Farmer, user.farmer_id)
        if not farmer:
            raise NotFound("farmer", user.farmer_id)

    db_user = User.model_validate(user.model_dump(exclude={"farmer_id"}))
    if farmer is not None:
        farmer.user = db_user
        save(db, farmer, "create user")
        db.refresh(db_user)
    else:
        save(db, db_user, "create user")
    return _with_farmer(db, db_user)


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    user_update: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    is_admin = (current_user.role or "").lower() == "admin"
    if current_user.id != user_id and not is_admin:
        raise PermissionDenied("You can only update your own profile", details="Insufficient permissions")

    db_user = db.get(User, user_id)
    if not db_user:
        raise NotFound("user", user_id)

    user_data = user_update.model_dump(exclude_unset=True)
    if not user_data:
        raise InvalidArgument("No valid fields provided for update")
    if "role" in user_data and not is_admin:
        raise PermissionDenied("Only admin users can change roles", details="Insufficient permissions")
    if user_data.get("email") and user_data["email"] != db_user.email:
        _ensure_unique_login(db, email=user_data["email"], exclude_id=user_id)

    for key, value in user_data.items():
        setattr(db_user, key, value)
    return _with_farmer(db, save(db, db_user, "update user"))


@router.delete("/{user_id}", response_model=DeleteResult)
def delete_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_admin(current_user, "delete accounts")
    db_user = db.get(User, user_id)
    if not db_user:
        raise NotFound("user", user_id)

    try:
        # The farmer profile outlives its login
        farmers = db.exec(select(Farmer).where(Farmer.user_id == user_id)).all()
        for farmer in farmers:
            farmer.user_id = None
            db.add(farmer)
        db.flush()
        db.delete(db_user)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to delete user %s: %s", user_id, e)
        raise StorageError("Failed to delete user", details=str(getattr(e, "orig", None) or e)) from e

    logger.info("Deleted user %s, detached %d farmers", user_id, len(farmers))
    return DeleteResult(message="User account deleted successfully", deleted_id=user_id)
