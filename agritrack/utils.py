from typing import Any, NamedTuple, Optional, TypeVar, Generic, Sequence
from pydantic import BaseModel
from math import ceil

T = TypeVar("T")

NAME_EXTENSIONS = {"jr", "jr.", "sr", "sr.", "ii", "iii", "iv"}


class PaginationMeta(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int


class Paginated(BaseModel, Generic[T]):
    success: bool = True
    meta: PaginationMeta
    items: Sequence[T]


def paginate(items: Sequence[T], page: int, per_page: int) -> Paginated[T]:
    """
    A utility function to paginate a list of items.
    """
    total = len(items)
    start = (page - 1) * per_page
    end = start + per_page

    paginated_items = items[start:end]
    total_pages = ceil(total / per_page) if per_page > 0 else 0

    meta = PaginationMeta(
        page=page,
        per_page=per_page,
        total=total,
        total_pages=total_pages
    )

    return Paginated[T](meta=meta, items=paginated_items)


def parse_reference_id(reference: Any) -> int:
    """
    Turn a "12: Corn" style reference (or a bare id) into the integer id.
    """
    if isinstance(reference, bool):
        raise ValueError(f"Invalid reference: {reference!r}")
    if isinstance(reference, int):
        return reference
    head = str(reference).split(":", 1)[0].strip()
    try:
        return int(head)
    except ValueError:
        raise ValueError(f"Invalid reference: {reference!r}") from None


def parse_reference_name(reference: Any) -> str:
    """
    "129: Corn" -> "Corn"; "Corn" -> "Corn".
    """
    parts = str(reference).split(":", 1)
    return (parts[1] if len(parts) > 1 else parts[0]).strip()


class NameParts(NamedTuple):
    firstname: str
    middlename: Optional[str]
    surname: Optional[str]
    extension: Optional[str]


def split_full_name(name: str) -> NameParts:
    """
    Split a full name into first/middle/surname/extension.

    Two words are first + surname, three add a middle name. With four or
    more words a short trailing token (Jr, Sr, III, ...) is the extension.
    """
    parts = name.split()
    if not parts:
        raise ValueError("Name must not be empty")
    if len(parts) == 1:
        return NameParts(parts[0], None, None, None)
    if len(parts) == 2:
        return NameParts(parts[0], None, parts[1], None)
    if len(parts) == 3:
        return NameParts(parts[0], parts[1], parts[2], None)

    last = parts[-1]
    if len(last) <= 4 or last.lower() in NAME_EXTENSIONS:
        return NameParts(parts[0], " ".join(parts[1:-2]), parts[-2], last)
    return NameParts(parts[0], " ".join(parts[1:-1]), last, None)
