"""
Persistence collaborators.

Each class wraps one SQLModel session and exposes the lookups the services
need. None of them commit on their own except through ``save``; every
service operation is one commit.
"""

from typing import Iterable, Optional, Sequence
import datetime

from sqlalchemy import func, or_
from sqlmodel import Session, select

from .classifier import BookingState, state_clause
from .exceptions import NotFoundError
from .models import (
    Booking,
    BookingStatus,
    Comment,
    Item,
    ItemRequest,
    User,
)


class _Repository:
    def __init__(self, session: Session):
        self.session = session

    def save(self, record):
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record


class UserDirectory(_Repository):
    def find(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def get(self, user_id: int) -> User:
        user = self.find(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def get_by_email(self, email: str) -> Optional[User]:
        statement = select(User).where(func.lower(User.email) == email.lower())
        return self.session.exec(statement).first()

    def list_all(self) -> Sequence[User]:
        return self.session.exec(select(User).order_by(User.id)).all()

    def names(self, user_ids: Iterable[int]) -> dict[int, str]:
        ids = set(user_ids)
        if not ids:
            return {}
        rows = self.session.exec(select(User.id, User.name).where(User.id.in_(ids)))
        return {user_id: name for user_id, name in rows}

    def has_dependents(self, user_id: int) -> bool:
        for statement in (
            select(Item.id).where(Item.owner_id == user_id),
            select(Booking.id).where(Booking.booker_id == user_id),
            select(ItemRequest.id).where(ItemRequest.requestor_id == user_id),
            select(Comment.id).where(Comment.author_id == user_id),
        ):
            if self.session.exec(statement.limit(1)).first() is not None:
                return True
        return False

    def delete(self, user: User) -> None:
        self.session.delete(user)
        self.session.commit()


class ItemDirectory(_Repository):
    def find(self, item_id: int) -> Optional[Item]:
        return self.session.get(Item, item_id)

    def get(self, item_id: int) -> Item:
        item = self.find(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        return item

    def list_owned_by(
        self, owner_id: int, offset: int = 0, limit: Optional[int] = None
    ) -> Sequence[Item]:
        statement = (
            select(Item)
            .where(Item.owner_id == owner_id)
            .order_by(Item.id)
            .offset(offset)
        )
        if limit is not None:
            statement = statement.limit(limit)
        return self.session.exec(statement).all()

    def owned_ids(self, owner_id: int) -> list[int]:
        statement = select(Item.id).where(Item.owner_id == owner_id)
        return list(self.session.exec(statement).all())

    def search_available(self, text: str, offset: int, limit: int) -> Sequence[Item]:
        pattern = f"%{text.lower()}%"
        statement = (
            select(Item)
            .where(Item.available == True)  # noqa: E712
            .where(
                or_(
                    func.lower(Item.name).like(pattern),
                    func.lower(Item.description).like(pattern),
                )
            )
            .order_by(Item.id)
            .offset(offset)
            .limit(limit)
        )
        return self.session.exec(statement).all()

    def list_for_requests(self, request_ids: Iterable[int]) -> Sequence[Item]:
        ids = set(request_ids)
        if not ids:
            return []
        statement = select(Item).where(Item.request_id.in_(ids)).order_by(Item.id)
        return self.session.exec(statement).all()


class BookingStore(_Repository):
    def find(self, booking_id: int) -> Optional[Booking]:
        return self.session.get(Booking, booking_id)

    def get(self, booking_id: int) -> Booking:
        booking = self.find(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    def _page(
        self,
        statement,
        state: BookingState,
        now: datetime.datetime,
        offset: int,
        limit: Optional[int],
    ) -> Sequence[Booking]:
        clause = state_clause(state, now)
        if clause is not None:
            statement = statement.where(clause)
        statement = statement.order_by(Booking.start_time.desc()).offset(offset)
        if limit is not None:
            statement = statement.limit(limit)
        return self.session.exec(statement).all()

    def list_for_booker(
        self,
        booker_id: int,
        state: BookingState,
        now: datetime.datetime,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[Booking]:
        statement = select(Booking).where(Booking.booker_id == booker_id)
        return self._page(statement, state, now, offset, limit)

    def list_for_items(
        self,
        item_ids: Iterable[int],
        state: BookingState,
        now: datetime.datetime,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[Booking]:
        ids = list(item_ids)
        if not ids:
            return []
        statement = select(Booking).where(Booking.item_id.in_(ids))
        return self._page(statement, state, now, offset, limit)

    def latest_approved_before(
        self, item_id: int, now: datetime.datetime
    ) -> Optional[Booking]:
        statement = (
            select(Booking)
            .where(Booking.item_id == item_id)
            .where(Booking.status == BookingStatus.APPROVED)
            .where(Booking.start_time < now)
            .order_by(Booking.end_time.desc())
        )
        return self.session.exec(statement).first()

    def earliest_approved_after(
        self, item_id: int, now: datetime.datetime
    ) -> Optional[Booking]:
        statement = (
            select(Booking)
            .where(Booking.item_id == item_id)
            .where(Booking.status == BookingStatus.APPROVED)
            .where(Booking.start_time > now)
            .order_by(Booking.start_time)
        )
        return self.session.exec(statement).first()

    def approved_for_renter(self, renter_id: int, item_id: int) -> Sequence[Booking]:
        statement = (
            select(Booking)
            .where(Booking.item_id == item_id)
            .where(Booking.booker_id == renter_id)
            .where(Booking.status == BookingStatus.APPROVED)
        )
        return self.session.exec(statement).all()


class CommentStore(_Repository):
    def list_for_item(self, item_id: int) -> Sequence[Comment]:
        statement = (
            select(Comment).where(Comment.item_id == item_id).order_by(Comment.created)
        )
        return self.session.exec(statement).all()


class RequestStore(_Repository):
    def find(self, request_id: int) -> Optional[ItemRequest]:
        return self.session.get(ItemRequest, request_id)

    def get(self, request_id: int) -> ItemRequest:
        request = self.find(request_id)
        if request is None:
            raise NotFoundError(f"Request {request_id} not found")
        return request

    def list_by_requestor(self, requestor_id: int) -> Sequence[ItemRequest]:
        statement = (
            select(ItemRequest)
            .where(ItemRequest.requestor_id == requestor_id)
            .order_by(ItemRequest.created.desc())
        )
        return self.session.exec(statement).all()

    def list_not_by_requestor(
        self, requestor_id: int, offset: int, limit: int
    ) -> Sequence[ItemRequest]:
        statement = (
            select(ItemRequest)
            .where(ItemRequest.requestor_id != requestor_id)
            .order_by(ItemRequest.created.desc())
            .offset(offset)
            .limit(limit)
        )
        return self.session.exec(statement).all()
