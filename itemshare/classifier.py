"""
Temporal classification of bookings.

A booking's CURRENT/PAST/FUTURE membership is never stored; it is decided
against the instant passed in as ``now``. All bounds are inclusive, so a
booking that starts exactly now is both CURRENT and FUTURE, and one that
ends exactly now is both CURRENT and PAST.

The same predicates exist in two forms: ``matches`` for bookings already in
memory, and ``state_clause`` for the store, which pushes them into SQL.
"""

from typing import Iterable, Optional
import datetime
import enum

from sqlalchemy import and_

from .exceptions import UnknownStateError
from .models import Booking, BookingStatus


class BookingState(str, enum.Enum):
    ALL = "ALL"
    CURRENT = "CURRENT"
    PAST = "PAST"
    FUTURE = "FUTURE"
    WAITING = "WAITING"
    REJECTED = "REJECTED"

    @classmethod
    def parse(cls, value: str) -> "BookingState":
        """Case-insensitive lookup; anything else is a client error."""
        try:
            return cls(value.strip().upper())
        except (ValueError, AttributeError):
            raise UnknownStateError(value)


def matches(booking: Booking, state: BookingState, now: datetime.datetime) -> bool:
    start, end = booking.start_time, booking.end_time
    if state is BookingState.ALL:
        return True
    if state is BookingState.CURRENT:
        return start <= now <= end
    if state is BookingState.PAST:
        return start <= now and end <= now
    if state is BookingState.FUTURE:
        return start >= now and end >= now
    if state is BookingState.WAITING:
        return booking.status == BookingStatus.WAITING
    if state is BookingState.REJECTED:
        return booking.status == BookingStatus.REJECTED
    raise UnknownStateError(str(state))


def classify(
    bookings: Iterable[Booking], state: BookingState, now: datetime.datetime
) -> list[Booking]:
    """Bookings in ``state`` at ``now``, latest start first.

    Ties on start keep their input order.
    """
    selected = [booking for booking in bookings if matches(booking, state, now)]
    return sorted(selected, key=lambda booking: booking.start_time, reverse=True)


def state_clause(state: BookingState, now: datetime.datetime) -> Optional[object]:
    """SQL counterpart of ``matches``; ``None`` means no filter."""
    if state is BookingState.ALL:
        return None
    if state is BookingState.CURRENT:
        return and_(Booking.start_time <= now, Booking.end_time >= now)
    if state is BookingState.PAST:
        return and_(Booking.start_time <= now, Booking.end_time <= now)
    if state is BookingState.FUTURE:
        return and_(Booking.start_time >= now, Booking.end_time >= now)
    if state is BookingState.WAITING:
        return Booking.status == BookingStatus.WAITING
    if state is BookingState.REJECTED:
        return Booking.status == BookingStatus.REJECTED
    raise UnknownStateError(str(state))
