"""
Values computed from an item's bookings at read time and never stored:
its last and next approved booking, and whether a user may comment on it.
"""

from typing import Optional
import datetime
import enum

from .models import Booking, BookingSummary, Item
from .store import BookingStore


class CommentEligibility(enum.Enum):
    ELIGIBLE = "eligible"
    NEVER_BOOKED = "never_booked"
    NOT_STARTED = "not_started"


def last_booking(
    bookings: BookingStore, item_id: int, now: datetime.datetime
) -> Optional[Booking]:
    """Approved booking that started before ``now`` with the latest end."""
    return bookings.latest_approved_before(item_id, now)


def next_booking(
    bookings: BookingStore, item_id: int, now: datetime.datetime
) -> Optional[Booking]:
    """Approved booking starting after ``now`` with the earliest start."""
    return bookings.earliest_approved_after(item_id, now)


def summarize(booking: Optional[Booking]) -> Optional[BookingSummary]:
    if booking is None:
        return None
    return BookingSummary(id=booking.id, booker_id=booking.booker_id)


def booking_summaries(
    bookings: BookingStore, item: Item, viewer_id: int, now: datetime.datetime
) -> tuple[Optional[BookingSummary], Optional[BookingSummary]]:
    """Last and next booking of ``item`` as seen by ``viewer_id``.

    Only the owner sees them; everyone else gets ``(None, None)``.
    """
    if item.owner_id != viewer_id:
        return None, None
    return (
        summarize(last_booking(bookings, item.id, now)),
        summarize(next_booking(bookings, item.id, now)),
    )


def comment_eligibility(
    bookings: BookingStore, author_id: int, item_id: int, now: datetime.datetime
) -> CommentEligibility:
    approved = bookings.approved_for_renter(author_id, item_id)
    if not approved:
        return CommentEligibility.NEVER_BOOKED
    if not any(booking.start_time < now for booking in approved):
        return CommentEligibility.NOT_STARTED
    return CommentEligibility.ELIGIBLE


def comment_eligible(
    bookings: BookingStore, author_id: int, item_id: int, now: datetime.datetime
) -> bool:
    return (
        comment_eligibility(bookings, author_id, item_id, now)
        is CommentEligibility.ELIGIBLE
    )
