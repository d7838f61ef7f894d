"""
Booking lifecycle.

A booking is created WAITING and is decided exactly once by the item's
owner:

    WAITING -> APPROVED
    WAITING -> REJECTED

Both outcomes are terminal. Availability is checked at creation only;
approving does not look at the item again, nor at other bookings of it.
"""

from typing import Iterable, Optional, Sequence
import datetime
import logging

from sqlmodel import Session

from .availability import check_booking_request
from .classifier import BookingState
from .clock import Clock, SystemClock
from .exceptions import AlreadyDecidedError, ForbiddenError, NotFoundError
from .models import Booking, BookingRead, BookingStatus, ItemRead, UserRead
from .store import BookingStore, ItemDirectory, UserDirectory

logger = logging.getLogger(__name__)

TRANSITIONS = {
    BookingStatus.WAITING: {BookingStatus.APPROVED, BookingStatus.REJECTED},
    BookingStatus.APPROVED: set(),
    BookingStatus.REJECTED: set(),
}


def assert_transition(booking: Booking, target: BookingStatus) -> None:
    if target not in TRANSITIONS[booking.status]:
        raise AlreadyDecidedError(
            f"Booking {booking.id} is already {booking.status.value}"
        )


class BookingService:
    def __init__(self, session: Session, clock: Optional[Clock] = None):
        self.users = UserDirectory(session)
        self.items = ItemDirectory(session)
        self.bookings = BookingStore(session)
        self.clock = clock or SystemClock()

    def create(
        self,
        renter_id: int,
        item_id: int,
        start: datetime.datetime,
        end: datetime.datetime,
    ) -> Booking:
        self.users.get(renter_id)
        check_booking_request(self.items, renter_id, item_id)

        booking = self.bookings.save(
            Booking(
                item_id=item_id,
                booker_id=renter_id,
                start_time=start,
                end_time=end,
                status=BookingStatus.WAITING,
            )
        )
        logger.info(
            "Booking %s created by user %s for item %s", booking.id, renter_id, item_id
        )
        return booking

    def set_approval(self, owner_id: int, booking_id: int, approved: bool) -> Booking:
        self.users.get(owner_id)
        booking = self.bookings.get(booking_id)
        item = self.items.get(booking.item_id)

        if item.owner_id != owner_id:
            logger.warning(
                "User %s tried to decide booking %s of item %s",
                owner_id,
                booking_id,
                item.id,
            )
            raise ForbiddenError(
                f"User {owner_id} cannot decide booking {booking_id}"
            )

        target = BookingStatus.APPROVED if approved else BookingStatus.REJECTED
        assert_transition(booking, target)
        booking.status = target
        booking = self.bookings.save(booking)
        logger.info("Booking %s %s by owner %s", booking.id, target.value, owner_id)
        return booking

    def read(self, user_id: int, booking_id: int) -> Booking:
        """The booking, visible only to its renter and the item's owner.

        Anyone else gets the same error as for a missing booking.
        """
        self.users.get(user_id)
        booking = self.bookings.get(booking_id)
        item = self.items.get(booking.item_id)
        if user_id not in (booking.booker_id, item.owner_id):
            raise NotFoundError(
                f"Booking {booking_id} not found for user {user_id}"
            )
        return booking

    def list_booker_bookings(
        self,
        booker_id: int,
        state: BookingState,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[Booking]:
        self.users.get(booker_id)
        now = self.clock.now()
        return self.bookings.list_for_booker(booker_id, state, now, offset, limit)

    def list_owner_item_bookings(
        self,
        owner_id: int,
        state: BookingState,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[Booking]:
        self.users.get(owner_id)
        now = self.clock.now()
        item_ids = self.items.owned_ids(owner_id)
        return self.bookings.list_for_items(item_ids, state, now, offset, limit)

    def describe(self, booking: Booking) -> BookingRead:
        return self.describe_all([booking])[0]

    def describe_all(self, bookings: Iterable[Booking]) -> list[BookingRead]:
        bookings = list(bookings)
        items, users = {}, {}
        for booking in bookings:
            if booking.item_id not in items:
                items[booking.item_id] = self.items.get(booking.item_id)
            if booking.booker_id not in users:
                users[booking.booker_id] = self.users.get(booking.booker_id)
        return [
            BookingRead(
                id=booking.id,
                start_time=booking.start_time,
                end_time=booking.end_time,
                status=booking.status,
                item=ItemRead.model_validate(items[booking.item_id]),
                booker=UserRead.model_validate(users[booking.booker_id]),
            )
            for booking in bookings
        ]
