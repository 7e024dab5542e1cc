from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, func, select

from agritrack.database import get_db
from agritrack.models import Product, Sector, User, YieldRecord, YieldStatus
from agritrack.schemas import ProductDistribution, SectorDistribution, YieldStatistics
from agritrack.security import get_current_user

router = APIRouter(prefix="/reports", tags=["Reports"])


def _accepted(statement, year: Optional[int] = None, farmer_id: Optional[int] = None):
    """Restrict a yield query to accepted harvests, optionally of one year / farmer."""
    statement = statement.where(YieldRecord.status == YieldStatus.ACCEPTED)
    if year is not None:
        statement = statement.where(
            YieldRecord.harvest_date >= date(year, 1, 1),
            YieldRecord.harvest_date < date(year + 1, 1, 1),
        )
    if farmer_id is not None:
        statement = statement.where(YieldRecord.farmer_id == farmer_id)
    return statement


def _percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


@router.get("/yield-distribution", response_model=List[SectorDistribution])
def get_yield_distribution(
    sector_id: Optional[int] = None,
    year: Optional[int] = Query(None, ge=1, le=9998),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Accepted yields per sector and product: counts, totals, averages and
    each product's share of its sector's volume and value.
    """
    sector_query = select(Sector).order_by(Sector.sector_name)
    if sector_id is not None:
        sector_query = sector_query.where(Sector.sector_id == sector_id)
    sectors: Dict[int, SectorDistribution] = {
        s.sector_id: SectorDistribution(sector_id=s.sector_id, sector_name=s.sector_name)
        for s in db.exec(sector_query).all()
    }

    rows = db.exec(
        _accepted(
            select(
                Product.sector_id,
                Product.id,
                Product.name,
                func.count(YieldRecord.id),
                func.sum(YieldRecord.volume),
                func.sum(YieldRecord.value),
            )
            .select_from(YieldRecord)
            .join(Product, Product.id == YieldRecord.product_id),
            year,
        )
        .group_by(Product.sector_id, Product.id, Product.name)
        .order_by(Product.name)
    ).all()

    for product_sector_id, product_id, product_name, count, volume, value in rows:
        sector = sectors.get(product_sector_id)
        if sector is None:
            continue
        volume = float(volume or 0.0)
        value = float(value or 0.0)
        sector.products.append(
            ProductDistribution(
                product_id=product_id,
                product_name=product_name,
                yield_count=count,
                total_volume=round(volume, 2),
                total_value=round(value, 2),
                avg_volume=round(volume / count, 2) if count else 0.0,
                avg_value=round(value / count, 2) if count else 0.0,
            )
        )
        sector.total_yields += count
        sector.total_volume += volume
        sector.total_value += value

    for sector in sectors.values():
        for product in sector.products:
            product.percentage_of_sector_volume = _percent(product.total_volume, sector.total_volume)
            product.percentage_of_sector_value = _percent(product.total_value, sector.total_value)
        sector.total_volume = round(sector.total_volume, 2)
        sector.total_value = round(sector.total_value, 2)

    return list(sectors.values())


@router.get("/yield-statistics", response_model=YieldStatistics)
def get_yield_statistics(
    year: Optional[int] = Query(None, ge=1, le=9998),
    farmer_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    total_volume, total_area = db.exec(
        _accepted(select(func.sum(YieldRecord.volume), func.sum(YieldRecord.area_harvested)), year, farmer_id)
    ).one()

    top = db.exec(
        _accepted(
            select(Product.name, func.sum(YieldRecord.volume).label("total"))
            .select_from(YieldRecord)
            .join(Product, Product.id == YieldRecord.product_id),
            year,
            farmer_id,
        )
        .group_by(Product.id, Product.name)
        .order_by(func.sum(YieldRecord.volume).desc())
    ).first()

    total_volume = float(total_volume or 0.0)
    total_area = float(total_area or 0.0)
    return YieldStatistics(
        total_yield=round(total_volume, 2),
        yield_per_hectare=round(total_volume / total_area, 2) if total_area else 0.0,
        top_product=top[0] if top else None,
        top_product_volume=round(float(top[1]), 2) if top else None,
        year=year,
        farmer_id=farmer_id,
    )
