from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Any, List, Optional
from datetime import date, datetime
from sqlmodel import SQLModel

from agritrack.utils import parse_reference_id, parse_reference_name


# --- Envelope ---
class Message(BaseModel):
    success: bool = True
    message: str


class DeleteResult(Message):
    deleted_id: int
    archived_yields: int = 0


# --- Yield Schemas ---
class YieldBase(SQLModel):
    farmer_id: int
    product_id: int
    farm_id: int
    harvest_date: Optional[date] = None
    volume: float = Field(ge=0)
    notes: Optional[str] = None
    value: Optional[float] = None
    images: Optional[List[str]] = None


class YieldCreate(YieldBase):
    area_harvested: Optional[float] = None


class YieldUpdate(SQLModel):
    # Fields left out of the payload keep their stored value
    farmer_id: Optional[int] = None
    product_id: Optional[int] = None
    farm_id: Optional[int] = None
    harvest_date: Optional[date] = None
    area_harvested: Optional[float] = None
    volume: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    value: Optional[float] = None
    images: Optional[List[str]] = None
    status: Optional[str] = None


class YieldRead(BaseModel):
    id: int
    farmer_id: int
    farmer_name: Optional[str] = None
    product_id: int
    product_name: Optional[str] = None
    farm_id: int
    farm_name: Optional[str] = None
    farm_area: Optional[float] = None
    harvest_date: Optional[date] = None
    area_harvested: Optional[float] = None
    volume: float
    value: Optional[float] = None
    notes: Optional[str] = None
    images: Optional[List[str]] = None
    status: Optional[str] = None
    sector_id: Optional[int] = None
    sector: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record) -> "YieldRead":
        """Flatten a YieldRecord and its farmer/product/sector/farm into one row."""
        farmer = record.farmer
        product = record.product
        farm = record.farm
        sector = product.sector if product else None
        return cls(
            id=record.id,
            farmer_id=record.farmer_id,
            farmer_name=farmer.display_name if farmer else None,
            product_id=record.product_id,
            product_name=product.name if product else None,
            farm_id=record.farm_id,
            farm_name=farm.farm_name if farm else None,
            farm_area=farm.area if farm else None,
            harvest_date=record.harvest_date,
            area_harvested=record.area_harvested,
            volume=record.volume,
            value=record.value,
            notes=record.notes,
            images=record.images,
            status=record.status,
            sector_id=product.sector_id if product else None,
            sector=sector.sector_name if sector else None,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class YieldEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    record: YieldRead = Field(alias="yield")


class YieldList(BaseModel):
    success: bool = True
    yields: List[YieldRead]


class YieldSummary(BaseModel):
    barangay: Optional[str] = None
    lake: Optional[str] = None
    total_yields: int
    total_volume: float
    total_value: float


class YieldLocationList(YieldList):
    summary: YieldSummary


# --- Farmer Schemas ---
class FarmerBase(SQLModel):
    name: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    barangay: Optional[str] = None
    sector_id: Optional[int] = None
    association_id: Optional[int] = None
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, name):
        if not name.strip():
            raise ValueError("Name must not be empty")
        return name.strip()


class FarmerCreate(FarmerBase):
    pass


class FarmerUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    barangay: Optional[str] = None
    sector_id: Optional[int] = None
    association_id: Optional[int] = None
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, name):
        if name is not None and not name.strip():
            raise ValueError("Name must not be empty")
        return name.strip() if name else name


class FarmerRead(SQLModel):
    id: int
    name: str
    firstname: str
    middlename: Optional[str] = None
    surname: Optional[str] = None
    extension: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    barangay: Optional[str] = None
    sector_id: Optional[int] = None
    association_id: Optional[int] = None
    image_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# --- Farm Schemas ---
class FarmBase(SQLModel):
    name: str = Field(min_length=1)
    vertices: List[Any] = Field(min_length=1)
    barangay: Optional[str] = None
    lake: Optional[str] = None
    sector_id: Optional[int] = None
    area: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None

    @field_validator("vertices")
    @classmethod
    def normalize_vertices(cls, vertices):
        # Accept [[lat, lng], ...] as well as [{"lat": .., "lng": ..}, ...]
        if vertices and isinstance(vertices[0], (list, tuple)):
            return [{"lat": v[0], "lng": v[1]} for v in vertices]
        return vertices


class FarmCreate(FarmBase):
    farmer_id: Optional[int] = None
    products: List[int] = []


class FarmUpdate(FarmBase):
    # Owner and product references arrive as "12: Corn" strings from the map UI
    owner: Optional[Any] = None
    products: List[Any] = []

    @field_validator("owner")
    @classmethod
    def owner_id(cls, owner):
        return parse_reference_id(owner) if owner not in (None, "") else None

    @field_validator("products")
    @classmethod
    def product_ids(cls, products):
        return [parse_reference_id(p) for p in products]


class FarmRead(SQLModel):
    farm_id: int
    farm_name: str
    vertices: List[Any]
    parent_barangay: Optional[str] = None
    lake: Optional[str] = None
    sector_id: Optional[int] = None
    farmer_id: Optional[int] = None
    products: List[int] = []
    area: Optional[float] = None
    description: Optional[str] = None
    status: str
    created_at: datetime

    @field_validator("products", mode="before")
    @classmethod
    def stored_product_ids(cls, products):
        # Older rows hold "12: Corn" references
        return [parse_reference_id(p) for p in products or []]

    class Config:
        from_attributes = True


# --- Product Schemas ---
class ProductBase(SQLModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    sector_id: int
    img_url: Optional[str] = None


class ProductCreate(ProductBase):
    pass


class ProductRead(ProductBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# --- Sector Schemas ---
class SectorRead(SQLModel):
    sector_id: int
    sector_name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


# --- Association Schemas ---
class AssociationBase(SQLModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class AssociationCreate(AssociationBase):
    pass


class AssociationRead(AssociationBase):
    id: int

    class Config:
        from_attributes = True


# --- Notification Schemas ---
class NotificationRead(BaseModel):
    id: int
    announcement_id: int
    title: str
    message: str
    status: str
    created_at: datetime


# --- User Schemas ---
class UserRead(SQLModel):
    id: int
    firebase_uid: str
    email: Optional[str] = None
    role: str
    sector_id: Optional[int] = None
    farmer_id: Optional[int] = None

    class Config:
        from_attributes = True


class UserCreate(SQLModel):
    firebase_uid: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    role: str = Field(default="farmer", min_length=1)
    sector_id: Optional[int] = None
    # Existing farmer profile to link to the new login
    farmer_id: Optional[int] = None


class UserUpdate(SQLModel):
    email: Optional[EmailStr] = None
    role: Optional[str] = Field(default=None, min_length=1)
    sector_id: Optional[int] = None


class FarmerRegistration(FarmerBase):
    """Self sign-up: the farmer profile behind a fresh Firebase account."""


# --- Report Schemas ---
class ProductDistribution(BaseModel):
    product_id: int
    product_name: str
    yield_count: int
    total_volume: float
    total_value: float
    avg_volume: float
    avg_value: float
    percentage_of_sector_volume: float = 0.0
    percentage_of_sector_value: float = 0.0


class SectorDistribution(BaseModel):
    sector_id: int
    sector_name: str
    total_yields: int = 0
    total_volume: float = 0.0
    total_value: float = 0.0
    products: List[ProductDistribution] = []


class YieldStatistics(BaseModel):
    total_yield: float
    yield_per_hectare: float
    top_product: Optional[str] = None
    top_product_volume: Optional[float] = None
    year: Optional[int] = None
    farmer_id: Optional[int] = None


# --- AI Schemas ---
class WeatherSummaryRequest(BaseModel):
    weather_data: dict
    forecast_data: Optional[Any] = None
    air_quality_data: Optional[Any] = None
    location: Optional[str] = None
    products: List[Any] = []

    @field_validator("products")
    @classmethod
    def product_names(cls, products):
        names = [parse_reference_name(p) for p in products[:5]]
        return [n for n in names if n]


class ChatRequest(BaseModel):
    message: str

    @field_validator("message")
    @classmethod
    def not_blank(cls, message):
        if not message.strip():
            raise ValueError("Message must not be empty")
        return message.strip()


class AIReply(BaseModel):
    success: bool = True
    model: str
    reply: str
