import logging

from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select

from agritrack.database import get_db, save
from agritrack.errors import InvalidArgument
from agritrack.models import User
from agritrack.routers.farmers import new_farmer
from agritrack.schemas import FarmerRead, FarmerRegistration, UserRead
from agritrack.security import get_current_user, get_token_claims

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/profile", response_model=UserRead)
def read_profile(current_user: User = Depends(get_current_user)):
    """
    Fetch the registered user behind the presented Firebase token.
    """
    return current_user


@router.post("/register-farmer", response_model=FarmerRead, status_code=status.HTTP_201_CREATED)
def register_farmer(
    registration: FarmerRegistration,
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
):
    """
    Finish sign-up for a freshly created Firebase account: stores a login with
    the farmer role and the farmer profile linked to it.
    """
    uid = claims["sub"]
    if db.exec(select(User).where(User.firebase_uid == uid)).first():
        raise InvalidArgument("User already registered", details=f"Firebase account {uid} already has a profile")

    email = registration.email or claims.get("email")
    if not email:
        raise InvalidArgument("Email is required", details="Token carries no email and none was supplied")
    if db.exec(select(User).where(User.email == email)).first():
        raise InvalidArgument("Email already in use", details=f"User with email {email} already registered")

    db_farmer = new_farmer(db, registration.model_copy(update={"email": email}))
    db_farmer.user = User(firebase_uid=uid, email=email, role="farmer", sector_id=registration.sector_id)
    db_farmer = save(db, db_farmer, "register farmer")
    logger.info("Registered farmer %s for Firebase account %s", db_farmer.id, uid)
    return db_farmer
