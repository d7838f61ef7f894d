from typing import Optional, Sequence
import logging

from sqlmodel import Session

from .clock import Clock, SystemClock
from .exceptions import ForbiddenError, ItemAvailabilityError
from .models import (
    Comment,
    CommentRead,
    Item,
    ItemCreate,
    ItemDetail,
    ItemUpdate,
)
from .store import (
    BookingStore,
    CommentStore,
    ItemDirectory,
    RequestStore,
    UserDirectory,
)
from .views import CommentEligibility, booking_summaries, comment_eligibility

logger = logging.getLogger(__name__)


class ItemService:
    def __init__(self, session: Session, clock: Optional[Clock] = None):
        self.users = UserDirectory(session)
        self.items = ItemDirectory(session)
        self.bookings = BookingStore(session)
        self.comments = CommentStore(session)
        self.requests = RequestStore(session)
        self.clock = clock or SystemClock()

    def create(self, owner_id: int, data: ItemCreate) -> Item:
        self.users.get(owner_id)
        request_id = data.request_id
        if request_id is not None and self.requests.find(request_id) is None:
            request_id = None
        item = self.items.save(
            Item(
                name=data.name,
                description=data.description,
                available=data.available,
                owner_id=owner_id,
                request_id=request_id,
            )
        )
        logger.info("Item %s created by user %s", item.id, owner_id)
        return item

    def update(self, owner_id: int, item_id: int, patch: ItemUpdate) -> ItemDetail:
        item = self.items.get(item_id)
        if item.owner_id != owner_id:
            raise ForbiddenError(f"User {owner_id} cannot edit item {item_id}")
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        for key, value in changes.items():
            setattr(item, key, value)
        item = self.items.save(item)
        logger.info("Item %s updated by owner %s", item.id, owner_id)
        return self._detail(item, owner_id)

    def read(self, viewer_id: int, item_id: int) -> ItemDetail:
        self.users.get(viewer_id)
        item = self.items.get(item_id)
        return self._detail(item, viewer_id)

    def list_owned(
        self, owner_id: int, offset: int = 0, limit: Optional[int] = None
    ) -> list[ItemDetail]:
        self.users.get(owner_id)
        items = self.items.list_owned_by(owner_id, offset, limit)
        return [self._detail(item, owner_id) for item in items]

    def search(self, text: str, offset: int = 0, limit: int = 10) -> Sequence[Item]:
        if not text or text.isspace():
            return []
        return self.items.search_available(text.strip(), offset, limit)

    def create_comment(self, author_id: int, item_id: int, text: str) -> CommentRead:
        author = self.users.get(author_id)
        item = self.items.get(item_id)
        now = self.clock.now()

        eligibility = comment_eligibility(self.bookings, author_id, item_id, now)
        if eligibility is CommentEligibility.NEVER_BOOKED:
            logger.debug(
                "User %s has no approved booking of item %s", author_id, item_id
            )
            raise ItemAvailabilityError(
                f"User {author_id} has not booked item {item_id}"
            )
        if eligibility is CommentEligibility.NOT_STARTED:
            raise ItemAvailabilityError(
                "A comment can only be left once the booking has started"
            )

        comment = self.comments.save(
            Comment(text=text, item_id=item.id, author_id=author_id, created=now)
        )
        logger.info(
            "Comment %s left on item %s by user %s", comment.id, item_id, author_id
        )
        return CommentRead(
            id=comment.id,
            text=comment.text,
            author_name=author.name,
            created=comment.created,
        )

    def comments_for(self, item_id: int) -> list[CommentRead]:
        comments = self.comments.list_for_item(item_id)
        names = self.users.names(comment.author_id for comment in comments)
        return [
            CommentRead(
                id=comment.id,
                text=comment.text,
                author_name=names.get(comment.author_id, ""),
                created=comment.created,
            )
            for comment in comments
        ]

    def _detail(self, item: Item, viewer_id: int) -> ItemDetail:
        now = self.clock.now()
        last, next_ = booking_summaries(self.bookings, item, viewer_id, now)
        return ItemDetail(
            id=item.id,
            name=item.name,
            description=item.description,
            available=item.available,
            request_id=item.request_id,
            last_booking=last,
            next_booking=next_,
            comments=self.comments_for(item.id),
        )
