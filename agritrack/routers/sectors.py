from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from typing import List

from agritrack.database import get_db
from agritrack.errors import NotFound
from agritrack.models import Sector
from agritrack.schemas import SectorRead

# Public: the landing page map reads sectors before sign-in
router = APIRouter(prefix="/sectors", tags=["Sectors"])


@router.get("/", response_model=List[SectorRead])
def read_sectors(db: Session = Depends(get_db)):
    return db.exec(select(Sector).order_by(Sector.sector_id)).all()


@router.get("/{sector_id}", response_model=SectorRead)
def read_sector(sector_id: int, db: Session = Depends(get_db)):
    sector = db.get(Sector, sector_id)
    if not sector:
        raise NotFound("sector", sector_id)
    return sector
