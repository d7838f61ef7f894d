"""Requests for items nobody has listed yet, and the items answering them."""

from collections import defaultdict
from typing import Iterable, Optional
import logging

from sqlmodel import Session

from .clock import Clock, SystemClock
from .models import ItemRead, ItemRequest, ItemRequestRead
from .store import ItemDirectory, RequestStore, UserDirectory

logger = logging.getLogger(__name__)


class ItemRequestService:
    def __init__(self, session: Session, clock: Optional[Clock] = None):
        self.users = UserDirectory(session)
        self.items = ItemDirectory(session)
        self.requests = RequestStore(session)
        self.clock = clock or SystemClock()

    def create(self, requestor_id: int, description: str) -> ItemRequestRead:
        self.users.get(requestor_id)
        request = self.requests.save(
            ItemRequest(
                description=description,
                requestor_id=requestor_id,
                created=self.clock.now(),
            )
        )
        logger.info("Item request %s created by user %s", request.id, requestor_id)
        return self._with_items([request])[0]

    def list_own(self, requestor_id: int) -> list[ItemRequestRead]:
        self.users.get(requestor_id)
        return self._with_items(self.requests.list_by_requestor(requestor_id))

    def list_others(
        self, user_id: int, offset: int = 0, limit: int = 10
    ) -> list[ItemRequestRead]:
        self.users.get(user_id)
        return self._with_items(
            self.requests.list_not_by_requestor(user_id, offset, limit)
        )

    def read(self, user_id: int, request_id: int) -> ItemRequestRead:
        self.users.get(user_id)
        return self._with_items([self.requests.get(request_id)])[0]

    def _with_items(self, requests: Iterable[ItemRequest]) -> list[ItemRequestRead]:
        requests = list(requests)
        answers = defaultdict(list)
        for item in self.items.list_for_requests(request.id for request in requests):
            answers[item.request_id].append(ItemRead.model_validate(item))
        return [
            ItemRequestRead(
                id=request.id,
                description=request.description,
                created=request.created,
                items=answers[request.id],
            )
            for request in requests
        ]
