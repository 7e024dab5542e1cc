from sqlmodel import Field, Relationship, SQLModel, JSON
from sqlalchemy import Column, Float
from typing import Optional, List
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Status values ---
class YieldStatus:
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"

    ALL = (PENDING, ACCEPTED, REJECTED)


PRIVILEGED_ROLES = {"admin", "staff"}


# --- User Model (identity resolved from a Firebase uid) ---
class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    firebase_uid: str = Field(unique=True, index=True)
    email: Optional[str] = Field(default=None, index=True)
    role: str = Field(default="farmer")
    sector_id: Optional[int] = Field(default=None, foreign_key="sectors.sector_id")
    created_at: datetime = Field(default_factory=utcnow)


# --- Sector Model ---
class Sector(SQLModel, table=True):
    __tablename__ = "sectors"

    sector_id: Optional[int] = Field(default=None, primary_key=True)
    sector_name: str = Field(index=True)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# --- Association Model ---
class Association(SQLModel, table=True):
    __tablename__ = "associations"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None


# --- Farmer Model ---
class Farmer(SQLModel, table=True):
    __tablename__ = "farmers"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    firstname: str
    middlename: Optional[str] = None
    surname: Optional[str] = None
    extension: Optional[str] = None
    email: Optional[str] = Field(default=None, index=True)
    phone: Optional[str] = None
    barangay: Optional[str] = Field(default=None, index=True)
    sector_id: Optional[int] = Field(default=None, foreign_key="sectors.sector_id")
    association_id: Optional[int] = Field(default=None, foreign_key="associations.id")
    image_url: Optional[str] = Field(default=None, sa_column_kwargs={"name": "imageUrl"})
    user_id: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    sector: Optional["Sector"] = Relationship()
    user: Optional["User"] = Relationship()

    @property
    def display_name(self) -> str:
        parts = [self.firstname, self.middlename, self.surname, self.extension]
        return " ".join(p for p in parts if p)


# --- Product Model ---
class Product(SQLModel, table=True):
    __tablename__ = "farm_products"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    sector_id: int = Field(foreign_key="sectors.sector_id")
    img_url: Optional[str] = Field(default=None, sa_column_kwargs={"name": "imgUrl"})
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    sector: Optional["Sector"] = Relationship()


# --- Farm Model ---
class Farm(SQLModel, table=True):
    __tablename__ = "farms"

    farm_id: Optional[int] = Field(default=None, primary_key=True)
    farm_name: str
    vertices: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    parent_barangay: Optional[str] = Field(default=None, index=True, sa_column_kwargs={"name": "parentBarangay"})
    lake: Optional[str] = Field(default=None, index=True)
    sector_id: Optional[int] = Field(default=None, foreign_key="sectors.sector_id")
    farmer_id: Optional[int] = Field(default=None, foreign_key="farmers.id", index=True)
    # Denormalized index of product ids grown here; kept in sync by YieldRecordManager
    products: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    area: Optional[float] = None
    description: Optional[str] = None
    status: str = Field(default="Active")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    sector: Optional["Sector"] = Relationship()
    farmer: Optional["Farmer"] = Relationship()


# --- Yield Record Model ---
class YieldRecord(SQLModel, table=True):
    __tablename__ = "farmer_yield"

    id: Optional[int] = Field(default=None, primary_key=True)
    farmer_id: int = Field(foreign_key="farmers.id", index=True)
    product_id: int = Field(foreign_key="farm_products.id", index=True)
    farm_id: int = Field(foreign_key="farms.farm_id", index=True)
    harvest_date: Optional[date] = None
    volume: float = 0.0
    area_harvested: Optional[float] = None
    notes: Optional[str] = None
    # Stored as "Value" in the legacy schema
    value: Optional[float] = Field(default=None, sa_column=Column("Value", Float, nullable=True))
    images: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    status: str = Field(default=YieldStatus.PENDING, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    farmer: Optional["Farmer"] = Relationship()
    product: Optional["Product"] = Relationship()
    farm: Optional["Farm"] = Relationship()


# --- Yield Archive Model (append-only) ---
class YieldArchive(SQLModel, table=True):
    __tablename__ = "yield_archive"

    id: Optional[int] = Field(default=None, primary_key=True)
    yield_id: int = Field(index=True)
    farmer_id: Optional[int] = None
    product_id: Optional[int] = None
    farm_id: Optional[int] = None
    harvest_date: Optional[date] = None
    volume: Optional[float] = None
    area_harvested: Optional[float] = None
    notes: Optional[str] = None
    value: Optional[float] = None
    images: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    farmer_name: Optional[str] = None
    product_name: Optional[str] = None
    farm_name: Optional[str] = None
    delete_date: datetime = Field(default_factory=utcnow)


# --- Announcement Model ---
class Announcement(SQLModel, table=True):
    __tablename__ = "announcements"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    message: str
    recipient_type: str = Field(default="specific")
    farmer_id: Optional[int] = Field(default=None, index=True)
    status: str = Field(default="sent")
    created_at: datetime = Field(default_factory=utcnow)


# --- Notification Model ---
class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    farmer_id: int = Field(index=True)
    announcement_id: int = Field(foreign_key="announcements.id")
    type: str = Field(default="announcement")
    status: str = Field(default="unread")
    created_at: datetime = Field(default_factory=utcnow)

    announcement: Optional["Announcement"] = Relationship()
