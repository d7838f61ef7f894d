import datetime
import pytest

from .conftest import HOUR, NOW, make_booking, make_user
from .exceptions import ItemAvailabilityError
from .items import ItemService
from .lifecycle import BookingService
from .models import BookingStatus
from .store import BookingStore
from .views import (
    CommentEligibility,
    booking_summaries,
    comment_eligibility,
    comment_eligible,
    last_booking,
    next_booking,
)

APPROVED = BookingStatus.APPROVED


def test_last_and_next_booking(session, item, booker):
    store = BookingStore(session)
    long_ago = make_booking(
        session, item, booker, NOW - 48 * HOUR, NOW - 40 * HOUR, APPROVED
    )
    latest_end = make_booking(
        session, item, booker, NOW - 30 * HOUR, NOW - 2 * HOUR, APPROVED
    )
    make_booking(session, item, booker, NOW - 3 * HOUR, NOW - 1 * HOUR)
    soonest = make_booking(session, item, booker, NOW + HOUR, NOW + 2 * HOUR, APPROVED)
    make_booking(session, item, booker, NOW + 5 * HOUR, NOW + 6 * HOUR, APPROVED)
    make_booking(session, item, booker, NOW + HOUR / 2, NOW + HOUR)

    assert last_booking(store, item.id, NOW).id == latest_end.id
    assert last_booking(store, item.id, NOW).id != long_ago.id
    assert next_booking(store, item.id, NOW).id == soonest.id


def test_no_approved_bookings(session, item, booker):
    store = BookingStore(session)
    rejected = BookingStatus.REJECTED
    make_booking(session, item, booker, NOW - 2 * HOUR, NOW - HOUR, rejected)
    make_booking(session, item, booker, NOW + HOUR, NOW + 2 * HOUR)

    assert last_booking(store, item.id, NOW) is None
    assert next_booking(store, item.id, NOW) is None


def test_booking_starting_now_is_neither_last_nor_next(session, item, booker):
    store = BookingStore(session)
    make_booking(session, item, booker, NOW, NOW + HOUR, APPROVED)

    assert last_booking(store, item.id, NOW) is None
    assert next_booking(store, item.id, NOW) is None


def test_only_owner_sees_summaries(session, owner, booker, item):
    store = BookingStore(session)
    past = make_booking(session, item, booker, NOW - 2 * HOUR, NOW - HOUR, APPROVED)
    upcoming = make_booking(session, item, booker, NOW + HOUR, NOW + 2 * HOUR, APPROVED)

    last, next_ = booking_summaries(store, item, owner.id, NOW)
    assert (last.id, last.booker_id) == (past.id, booker.id)
    assert (next_.id, next_.booker_id) == (upcoming.id, booker.id)

    assert booking_summaries(store, item, booker.id, NOW) == (None, None)


def test_comment_eligibility_follows_booking(session, clock, owner, booker, item):
    store = BookingStore(session)
    bookings = BookingService(session, clock)
    booking = bookings.create(booker.id, item.id, NOW + HOUR, NOW + 2 * HOUR)

    eligibility = comment_eligibility(store, booker.id, item.id, NOW)
    assert eligibility is CommentEligibility.NEVER_BOOKED

    bookings.set_approval(owner.id, booking.id, True)
    eligibility = comment_eligibility(store, booker.id, item.id, NOW)
    assert eligibility is CommentEligibility.NOT_STARTED
    assert not comment_eligible(store, booker.id, item.id, NOW)

    later = NOW + HOUR + datetime.timedelta(minutes=1)
    assert comment_eligible(store, booker.id, item.id, later)


def test_other_renters_bookings_do_not_count(session, item, booker):
    store = BookingStore(session)
    make_booking(session, item, booker, NOW - 2 * HOUR, NOW - HOUR, APPROVED)
    other = make_user(session, "Other")

    assert comment_eligible(store, booker.id, item.id, NOW)
    assert not comment_eligible(store, other.id, item.id, NOW)


# --------
# Scenarios
# --------


def test_book_approve_then_comment_once_started(session, clock, owner, booker, item):
    bookings = BookingService(session, clock)
    items = ItemService(session, clock)

    booking = bookings.create(booker.id, item.id, NOW + HOUR, NOW + 2 * HOUR)
    assert booking.status == BookingStatus.WAITING

    assert bookings.set_approval(owner.id, booking.id, True).status == APPROVED

    with pytest.raises(ItemAvailabilityError) as exc:
        items.create_comment(booker.id, item.id, "Great drill")
    assert "started" in exc.value.message

    clock.advance(HOUR + datetime.timedelta(minutes=30))
    comment = items.create_comment(booker.id, item.id, "Great drill")

    assert comment.text == "Great drill"
    assert comment.author_name == booker.name
    assert comment.created == clock.now()


def test_comment_without_booking_is_refused(session, clock, booker, item):
    items = ItemService(session, clock)

    with pytest.raises(ItemAvailabilityError) as exc:
        items.create_comment(booker.id, item.id, "Never used it")
    assert "has not booked" in exc.value.message


def test_past_approved_booking_is_last(session, clock, owner, booker, item):
    bookings = BookingService(session, clock)
    booking = bookings.create(
        booker.id,
        item.id,
        datetime.datetime(2023, 8, 1, 10, 0, tzinfo=datetime.timezone.utc),
        datetime.datetime(2023, 8, 8, 10, 0, tzinfo=datetime.timezone.utc),
    )
    bookings.set_approval(owner.id, booking.id, True)

    detail = ItemService(session, clock).read(owner.id, item.id)

    assert detail.last_booking.id == booking.id
    assert detail.next_booking is None
