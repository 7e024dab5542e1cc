"""Farmer-facing messages derived from yield status transitions.

Nothing here touches the database: ``derive_announcement`` is a pure
function of the old/new status pair and the record's display values, so the
transition table can be read (and tested) on its own.
"""
from typing import NamedTuple, Optional


class StatusAnnouncement(NamedTuple):
    title: str
    message: str


def _fmt_number(value) -> str:
    """Render 100.0 as "100" and 2.50 as "2.5"."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    if number.is_integer():
        return str(int(number))
    return f"{number:g}"


def _normalize(status: Optional[str]) -> str:
    return (status or "").strip().lower()


def derive_announcement(
    old_status: Optional[str],
    new_status: Optional[str],
    farmer_name: str,
    product_name: str,
    new_volume,
    new_area,
) -> Optional[StatusAnnouncement]:
    """Return the announcement for ``old_status -> new_status``, or ``None``.

    Statuses are compared case-insensitively. Identity transitions never
    announce, and a move back to Pending only announces a resubmission after
    a rejection (initial creation is not a transition this function sees).
    """
    old = _normalize(old_status)
    new = _normalize(new_status)

    if old == new:
        return None

    volume = _fmt_number(new_volume)
    area = _fmt_number(new_area)

    if new == "pending":
        if old == "rejected":
            return StatusAnnouncement(
                "Harvest Resubmitted",
                f"Hello {farmer_name}, thank you for resubmitting your {product_name} harvest. "
                "We have received your updated information and will review it shortly.",
            )
        return None

    if new == "accepted":
        if old == "pending":
            return StatusAnnouncement(
                "Harvest Accepted! ✅",
                f"Congratulations {farmer_name}! Your {product_name} harvest has been accepted. "
                f"Your {volume}kg yield from {area} hectares has been verified and approved.",
            )
        if old == "rejected":
            return StatusAnnouncement(
                "Harvest Now Accepted",
                f"Good news {farmer_name}! After review, your {product_name} harvest has been accepted. "
                f"Your {volume}kg yield is now approved in our system.",
            )
        return None

    if new == "rejected":
        if old == "pending":
            return StatusAnnouncement(
                "Harvest Review Required",
                f"Hello {farmer_name}, we need to review your {product_name} harvest submission. "
                "Please contact our office for more information. "
                "You can update your harvest details and resubmit for review.",
            )
        if old == "accepted":
            return StatusAnnouncement(
                "Harvest Status Updated",
                f"Hello {farmer_name}, your {product_name} harvest status has been rejected. "
                "Please contact support for assistance or resubmit your harvest details.",
            )
        return None

    return None
