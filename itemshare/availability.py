"""Rules deciding whether a booking request may be accepted."""

import datetime

from .exceptions import ItemAvailabilityError, SelfBookingError, ValidationError
from .models import Item
from .store import ItemDirectory


def check_booking_window(
    start: datetime.datetime, end: datetime.datetime, now: datetime.datetime
) -> None:
    """Reject ranges that are empty, inverted or already in the past."""
    if start < now:
        raise ValidationError("Booking start must not be in the past")
    if end < now:
        raise ValidationError("Booking end must not be in the past")
    if end <= start:
        raise ValidationError("Booking end must be after its start")


def check_booking_request(items: ItemDirectory, renter_id: int, item_id: int) -> Item:
    """Return the item if ``renter_id`` may book it.

    Assumes the time range was already checked. Ownership is tested before
    availability, so an owner is refused even on an unavailable item.
    """
    item = items.get(item_id)
    if item.owner_id == renter_id:
        raise SelfBookingError("Owner cannot book their own item")
    if not item.available:
        raise ItemAvailabilityError(f"Item {item_id} is not available for booking")
    return item
