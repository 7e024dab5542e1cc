from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from typing import List, Optional

from agritrack.database import get_db
from agritrack.models import User, YieldRecord
from agritrack.schemas import (
    DeleteResult,
    YieldCreate,
    YieldEnvelope,
    YieldList,
    YieldLocationList,
    YieldRead,
    YieldSummary,
    YieldUpdate,
)
from agritrack.security import get_current_user
from agritrack.utils import Paginated, paginate
from agritrack.yield_manager import YieldRecordManager

router = APIRouter(tags=["Yields"])


def get_yield_manager(db: Session = Depends(get_db)) -> YieldRecordManager:
    return YieldRecordManager(db)


@router.post("/yields", response_model=YieldEnvelope, status_code=status.HTTP_201_CREATED)
def create_yield(
    payload: YieldCreate,
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    record = manager.create(**payload.model_dump(), caller_role=current_user.role)
    return YieldEnvelope(record=YieldRead.from_record(record))


@router.get("/yields/farm/{farm_id}", response_model=YieldList)
def read_farm_yields(
    farm_id: int,
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    records = manager.list_for_farm(farm_id)
    return YieldList(yields=[YieldRead.from_record(r) for r in records])


@router.get("/yields/product/{product_id}", response_model=YieldList)
def read_product_yields(
    product_id: int,
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    records = manager.list_for_product(product_id)
    return YieldList(yields=[YieldRead.from_record(r) for r in records])


def _location_list(records: List[YieldRecord], **location) -> YieldLocationList:
    return YieldLocationList(
        yields=[YieldRead.from_record(r) for r in records],
        summary=YieldSummary(
            total_yields=len(records),
            total_volume=sum(r.volume for r in records),
            total_value=sum(r.value or 0.0 for r in records),
            **location,
        ),
    )


@router.get("/yields/barangay/{barangay}", response_model=YieldLocationList)
def read_barangay_yields(
    barangay: str,
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    """
    Accepted yields from farms inside one barangay, with volume and value totals.
    """
    return _location_list(manager.list_for_barangay(barangay), barangay=barangay)


@router.get("/yields/lake/{lake}", response_model=YieldLocationList)
def read_lake_yields(
    lake: str,
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    return _location_list(manager.list_for_lake(lake), lake=lake)


@router.get("/yields/{yield_id}", response_model=YieldEnvelope)
def read_yield(
    yield_id: int,
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    return YieldEnvelope(record=YieldRead.from_record(manager.get(yield_id)))


@router.put("/yields/{yield_id}", response_model=YieldEnvelope)
def update_yield(
    yield_id: int,
    payload: YieldUpdate,
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    record = manager.update(yield_id, payload.model_dump(exclude_unset=True))
    return YieldEnvelope(record=YieldRead.from_record(record))


@router.delete("/yields/{yield_id}", response_model=DeleteResult)
def delete_yield(
    yield_id: int,
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    archived = manager.delete(yield_id)
    return DeleteResult(message="Yield deleted successfully", deleted_id=yield_id, archived_yields=archived)


@router.get("/farmer-yields", response_model=Paginated[YieldRead])
@router.get("/farmer-yields/{farmer_id}", response_model=Paginated[YieldRead])
def read_farmer_yields(
    farmer_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=500),
    manager: YieldRecordManager = Depends(get_yield_manager),
    current_user: User = Depends(get_current_user),
):
    """
    Yields of one farmer, or of every farmer when no id is given; newest first.
    """
    records = manager.list_for_farmer(farmer_id)
    return paginate([YieldRead.from_record(r) for r in records], page, per_page)
