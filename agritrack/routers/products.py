from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select
from typing import List, Optional

from agritrack.database import get_db, save
from agritrack.errors import InvalidArgument, NotFound
from agritrack.models import Product, Sector, User, utcnow
from agritrack.routers.yields import get_yield_manager
from agritrack.schemas import DeleteResult, ProductCreate, ProductRead
from agritrack.security import get_current_user
from agritrack.yield_manager import YieldRecordManager

router = APIRouter(prefix="/products", tags=["Products"])


def _ensure_sector(db: Session, sector_id: int) -> None:
    if not db.get(Sector, sector_id):
        raise InvalidArgument("Invalid sector_id", details=f"sector with ID {sector_id} not found")


@router.get("/", response_model=List[ProductRead])
def read_products(
    sector_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    statement = select(Product)
    if sector_id is not None:
        statement = statement.where(Product.sector_id == sector_id)
    return db.exec(statement.order_by(Product.name)).all()


@router.post("/", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
def create_product(product: ProductCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    _ensure_sector(db, product.sector_id)
    db_product = Product.model_validate(product)
    return save(db, db_product, "create product")


@router.put("/{product_id}", response_model=ProductRead)
def update_product(
    product_id: int,
    product_update: ProductCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_product = db.get(Product, product_id)
    if not db_product:
        raise NotFound("product", product_id)
    _ensure_sector(db, product_update.sector_id)

    for key, value in product_update.model_dump().items():
        setattr(db_product, key, value)
    db_product.updated_at = utcnow()
    return save(db, db_product, "update product")


@router.delete("/{product_id}", response_model=DeleteResult)
def delete_product(
    product_id: int,
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    """
    Delete a product, archiving its yields and removing it from every farm.
    """
    archived = manager.delete_product(product_id)
    return DeleteResult(message="Product deleted successfully", deleted_id=product_id, archived_yields=archived)
