import logging
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from agritrack.config import DATABASE_URL, SQL_ECHO
from agritrack.errors import StorageError

logger = logging.getLogger(__name__)

engine = create_engine(DATABASE_URL, echo=SQL_ECHO, pool_pre_ping=True)


def create_db_and_tables(bind=None) -> None:
    # Import models so every table is registered on the metadata
    from agritrack import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_db() -> Iterator[Session]:
    with Session(engine) as session:
        yield session


def save(db: Session, instance, action: str):
    """Commit ``instance`` and refresh it; storage failures become StorageError."""
    try:
        db.add(instance)
        db.commit()
        db.refresh(instance)
        return instance
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to %s: %s", action, e)
        raise StorageError(f"Failed to {action}", details=str(getattr(e, "orig", None) or e)) from e
