"""Lifecycle of yield (harvest) records.

``YieldRecordManager`` owns creation, full-field update and archival delete
of ``farmer_yield`` rows, including the cascades triggered by deleting a
farm, a farmer or a product. It also keeps ``Farm.products`` (the
denormalized list of product ids grown on a farm) in step with the yield
rows, and turns status transitions into farmer announcements.

Every public mutation is one transaction on the injected session: storage
failures roll the whole operation back and surface as ``StorageError``.
"""
import logging
import math
from contextlib import contextmanager
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, or_, select

from agritrack.announcements import derive_announcement
from agritrack.errors import AgriTrackError, InvalidArgument, NotFound, StorageError
from agritrack.models import (
    Announcement,
    Farm,
    Farmer,
    Notification,
    PRIVILEGED_ROLES,
    Product,
    User,
    YieldArchive,
    YieldRecord,
    YieldStatus,
    utcnow,
)
from agritrack.utils import parse_reference_id

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "farmer_id",
    "product_id",
    "farm_id",
    "harvest_date",
    "area_harvested",
    "volume",
    "notes",
    "value",
    "images",
    "status",
)

# Nulls for these are ignored rather than written
REQUIRED_FIELDS = ("farmer_id", "product_id", "farm_id", "volume")


def initial_status(caller_role: Optional[str]) -> str:
    """Admin and staff submissions are trusted; everything else awaits review."""
    if (caller_role or "").lower() in PRIVILEGED_ROLES:
        return YieldStatus.ACCEPTED
    return YieldStatus.PENDING


def canonical_status(status: str) -> str:
    for known in YieldStatus.ALL:
        if status.strip().lower() == known.lower():
            return known
    raise InvalidArgument(
        f"Invalid status '{status}'. It must be one of: {', '.join(YieldStatus.ALL)}."
    )


def validate_area(area_harvested) -> float:
    try:
        area = float(area_harvested)
    except (TypeError, ValueError):
        area = float("nan")
    if not math.isfinite(area) or area <= 0:
        raise InvalidArgument("Invalid area_harvested value. It must be a positive number.")
    return area


def farm_product_ids(farm: Farm) -> List[int]:
    ids = []
    for product in farm.products or []:
        try:
            # Older rows hold "12: Corn" style references
            ids.append(parse_reference_id(product))
        except ValueError:
            logger.warning("Ignoring non-numeric product reference %r on farm %s", product, farm.farm_id)
    return ids


class YieldRecordManager:
    def __init__(self, db: Session):
        self.db = db

    # --- Transactions ---

    @contextmanager
    def _transaction(self, action: str):
        try:
            yield
            self.db.commit()
        except AgriTrackError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to %s: %s", action, e)
            raise StorageError(f"Failed to {action}", details=str(getattr(e, "orig", None) or e)) from e

    # --- Reads ---

    def get(self, yield_id: int) -> YieldRecord:
        record = self.db.get(YieldRecord, yield_id)
        if not record:
            raise NotFound("yield", yield_id)
        return record

    def list_for_farm(self, farm_id: int) -> List[YieldRecord]:
        if not self.db.get(Farm, farm_id):
            raise NotFound("farm", farm_id)
        statement = (
            select(YieldRecord)
            .where(YieldRecord.farm_id == farm_id)
            .order_by(YieldRecord.created_at.desc(), YieldRecord.id.desc())
        )
        return list(self.db.exec(statement).all())

    def list_for_farmer(self, farmer_id: Optional[int] = None) -> List[YieldRecord]:
        statement = select(YieldRecord)
        if farmer_id is not None:
            statement = statement.where(YieldRecord.farmer_id == farmer_id)
        statement = statement.order_by(YieldRecord.created_at.desc(), YieldRecord.id.desc())
        return list(self.db.exec(statement).all())

    def list_for_product(self, product_id: int) -> List[YieldRecord]:
        statement = (
            select(YieldRecord)
            .where(YieldRecord.product_id == product_id)
            .order_by(YieldRecord.harvest_date.desc(), YieldRecord.id.desc())
        )
        return list(self.db.exec(statement).all())

    def _list_by_farm_location(self, condition) -> List[YieldRecord]:
        statement = (
            select(YieldRecord)
            .join(Farm, Farm.farm_id == YieldRecord.farm_id)
            .where(condition, YieldRecord.status == YieldStatus.ACCEPTED)
            .order_by(YieldRecord.harvest_date.desc(), YieldRecord.id.desc())
        )
        return list(self.db.exec(statement).all())

    def list_for_barangay(self, barangay: str) -> List[YieldRecord]:
        """Accepted yields harvested on farms inside ``barangay``."""
        return self._list_by_farm_location(Farm.parent_barangay == barangay)

    def list_for_lake(self, lake: str) -> List[YieldRecord]:
        return self._list_by_farm_location(Farm.lake == lake)

    # --- Farm product index ---

    def _lock_farm(self, farm_id: int) -> Optional[Farm]:
        statement = select(Farm).where(Farm.farm_id == farm_id).with_for_update()
        return self.db.exec(statement).first()

    def _lock_farms(self, farm_ids: Iterable[int]) -> None:
        """Lock several farm rows, in farm id order."""
        farm_ids = sorted(set(farm_ids))
        if farm_ids:
            self.db.exec(
                select(Farm).where(Farm.farm_id.in_(farm_ids)).order_by(Farm.farm_id).with_for_update()
            ).all()

    def _add_farm_product(self, farm: Farm, product_id: int) -> None:
        products = farm_product_ids(farm)
        if product_id not in products:
            # Assign a new list so the JSON column is flagged dirty
            farm.products = products + [product_id]
            self.db.add(farm)

    def _prune_farm_product(self, farm_id: int, product_id: int) -> None:
        """Drop ``product_id`` from the farm's list once no yield references the pair.

        The farm row is locked before counting, so a concurrent create for the
        same pair either commits first (and is counted) or waits.
        """
        farm = self._lock_farm(farm_id)
        if farm is None:
            return
        remaining = self.db.exec(
            select(func.count(YieldRecord.id)).where(
                YieldRecord.farm_id == farm_id, YieldRecord.product_id == product_id
            )
        ).one()
        if remaining:
            return
        products = farm_product_ids(farm)
        if product_id in products:
            farm.products = [p for p in products if p != product_id]
            self.db.add(farm)

    # --- Create ---

    def create(
        self,
        farmer_id: int,
        product_id: int,
        farm_id: int,
        harvest_date: Optional[date],
        volume: float,
        area_harvested: Optional[float] = None,
        notes: Optional[str] = None,
        value: Optional[float] = None,
        images: Optional[List[str]] = None,
        caller_role: Optional[str] = None,
    ) -> YieldRecord:
        if area_harvested is not None:
            area_harvested = validate_area(area_harvested)

        with self._transaction("create yield"):
            farm = self._lock_farm(farm_id)
            if farm is None:
                raise NotFound("farm", farm_id)

            self._add_farm_product(farm, product_id)

            record = YieldRecord(
                farmer_id=farmer_id,
                product_id=product_id,
                farm_id=farm_id,
                harvest_date=harvest_date,
                volume=volume,
                area_harvested=area_harvested,
                notes=notes,
                value=value,
                images=images,
                status=initial_status(caller_role),
            )
            self.db.add(record)

        self.db.refresh(record)
        logger.info("Created yield %s for farm %s with status %s", record.id, farm_id, record.status)
        return record

    # --- Update ---

    def update(self, yield_id: int, changes: dict) -> YieldRecord:
        """Overwrite the record with ``changes`` and announce the status transition.

        A supplied ``area_harvested`` is validated before anything is read.
        Keys missing from ``changes`` keep their stored value.
        """
        changes = {
            k: v
            for k, v in changes.items()
            if k in UPDATABLE_FIELDS and not (v is None and k in REQUIRED_FIELDS)
        }
        if "area_harvested" in changes:
            changes["area_harvested"] = validate_area(changes["area_harvested"])
        if changes.get("status") is not None:
            changes["status"] = canonical_status(changes["status"])
        else:
            changes.pop("status", None)

        with self._transaction("update yield"):
            record = self.db.get(YieldRecord, yield_id)
            if not record:
                raise NotFound("yield", yield_id)

            previous_status = record.status
            previous_pair = (record.farm_id, record.product_id)

            for key, value in changes.items():
                setattr(record, key, value)
            record.updated_at = utcnow()
            self.db.add(record)

            current_pair = (record.farm_id, record.product_id)
            if current_pair != previous_pair:
                farm = self._lock_farm(record.farm_id)
                if farm is None:
                    raise NotFound("farm", record.farm_id)
                self._add_farm_product(farm, record.product_id)
                self.db.flush()
                self._prune_farm_product(*previous_pair)

        self.db.refresh(record)
        self._announce_transition(record, previous_status)
        return record

    def _announce_transition(self, record: YieldRecord, previous_status: Optional[str]) -> Optional[Announcement]:
        """Best-effort: a failure here is logged and never fails the update."""
        try:
            farmer = record.farmer
            product = record.product
            derived = derive_announcement(
                previous_status,
                record.status,
                farmer.display_name if farmer else "Farmer",
                product.name if product else "product",
                record.volume,
                record.area_harvested,
            )
            if derived is None:
                logger.debug("No announcement for yield %s: %s -> %s", record.id, previous_status, record.status)
                return None

            announcement = Announcement(
                title=derived.title,
                message=derived.message,
                recipient_type="specific",
                farmer_id=record.farmer_id,
                status="sent",
            )
            self.db.add(announcement)
            self.db.flush()
            self.db.add(
                Notification(
                    farmer_id=record.farmer_id,
                    announcement_id=announcement.id,
                    type="announcement",
                    status="unread",
                )
            )
            self.db.commit()
            logger.info("Announcement '%s' created for yield %s", derived.title, record.id)
            return announcement
        except Exception:
            self.db.rollback()
            logger.exception("Failed to create announcement for yield %s", record.id)
            return None

    # --- Delete / archive ---

    def _archive(self, record: YieldRecord) -> YieldArchive:
        farmer = record.farmer
        product = record.product
        farm = record.farm
        snapshot = YieldArchive(
            yield_id=record.id,
            farmer_id=record.farmer_id,
            product_id=record.product_id,
            farm_id=record.farm_id,
            harvest_date=record.harvest_date,
            volume=record.volume,
            area_harvested=record.area_harvested,
            notes=record.notes,
            value=record.value,
            images=record.images,
            status=record.status,
            created_at=record.created_at,
            updated_at=record.updated_at,
            farmer_name=farmer.display_name if farmer else None,
            product_name=product.name if product else None,
            farm_name=farm.farm_name if farm else None,
            delete_date=utcnow(),
        )
        self.db.add(snapshot)
        return snapshot

    def _archive_and_delete(self, records: Iterable[YieldRecord]) -> set:
        """Archive then delete each record; return the (farm, product) pairs touched."""
        pairs = set()
        for record in records:
            self._archive(record)
            pairs.add((record.farm_id, record.product_id))
            self.db.delete(record)
        self.db.flush()
        return pairs

    def delete(self, yield_id: int) -> int:
        with self._transaction("delete yield"):
            record = self.db.get(YieldRecord, yield_id)
            if not record:
                raise NotFound("yield", yield_id)
            self._lock_farm(record.farm_id)
            for farm_id, product_id in self._archive_and_delete([record]):
                self._prune_farm_product(farm_id, product_id)

        logger.info("Archived and deleted yield %s", yield_id)
        return 1

    def delete_farm(self, farm_id: int) -> int:
        with self._transaction("delete farm"):
            farm = self._lock_farm(farm_id)
            if not farm:
                raise NotFound("farm", farm_id)
            records = self.db.exec(select(YieldRecord).where(YieldRecord.farm_id == farm_id)).all()
            self._archive_and_delete(records)
            self.db.delete(farm)

        logger.info("Deleted farm %s, archived %d yields", farm_id, len(records))
        return len(records)

    def delete_farmer(self, farmer_id: int) -> int:
        with self._transaction("delete farmer"):
            farmer = self.db.get(Farmer, farmer_id)
            if not farmer:
                raise NotFound("farmer", farmer_id)

            farms = self.db.exec(select(Farm).where(Farm.farmer_id == farmer_id)).all()
            farm_ids = [farm.farm_id for farm in farms]

            condition = YieldRecord.farmer_id == farmer_id
            if farm_ids:
                condition = or_(condition, YieldRecord.farm_id.in_(farm_ids))
            records = self.db.exec(select(YieldRecord).where(condition)).all()
            self._lock_farms(farm_ids + [record.farm_id for record in records])

            # Farms of other farmers keep their product index in sync
            for farm_id, product_id in self._archive_and_delete(records):
                if farm_id not in farm_ids:
                    self._prune_farm_product(farm_id, product_id)

            for farm in farms:
                self.db.delete(farm)

            user_id = farmer.user_id
            self.db.delete(farmer)
            self.db.flush()
            if user_id:
                user = self.db.get(User, user_id)
                if user:
                    self.db.delete(user)

        logger.info("Deleted farmer %s, archived %d yields", farmer_id, len(records))
        return len(records)

    def delete_product(self, product_id: int) -> int:
        with self._transaction("delete product"):
            product = self.db.get(Product, product_id)
            if not product:
                raise NotFound("product", product_id)

            farms = self.db.exec(select(Farm).order_by(Farm.farm_id).with_for_update()).all()
            records = self.db.exec(select(YieldRecord).where(YieldRecord.product_id == product_id)).all()
            self._archive_and_delete(records)

            for farm in farms:
                products = farm_product_ids(farm)
                if product_id in products:
                    farm.products = [p for p in products if p != product_id]
                    self.db.add(farm)

            self.db.delete(product)

        logger.info("Deleted product %s, archived %d yields", product_id, len(records))
        return len(records)
