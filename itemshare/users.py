from typing import Optional, Sequence
import logging

from sqlmodel import Session

from .auth import get_password_hash
from .exceptions import ForbiddenError, ValidationError
from .models import User, UserCreate, UserUpdate
from .store import UserDirectory

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: Session):
        self.users = UserDirectory(session)

    def _ensure_email_free(self, email: str, user_id: Optional[int] = None) -> None:
        existing = self.users.get_by_email(email)
        if existing is not None and existing.id != user_id:
            raise ValidationError(f"Email {email} is already registered")

    def create(self, data: UserCreate) -> User:
        self._ensure_email_free(data.email)
        user = self.users.save(
            User(
                name=data.name,
                email=data.email,
                hashed_password=get_password_hash(data.password),
            )
        )
        logger.info("User %s registered", user.id)
        return user

    def read(self, user_id: int) -> User:
        return self.users.get(user_id)

    def list_all(self) -> Sequence[User]:
        return self.users.list_all()

    def update(self, actor_id: int, user_id: int, patch: UserUpdate) -> User:
        user = self.users.get(user_id)
        if actor_id != user_id:
            raise ForbiddenError(f"User {actor_id} cannot edit user {user_id}")
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in changes:
            self._ensure_email_free(changes["email"], user_id)
        if "password" in changes:
            user.hashed_password = get_password_hash(changes.pop("password"))
        for key, value in changes.items():
            setattr(user, key, value)
        return self.users.save(user)

    def delete(self, actor_id: int, user_id: int) -> None:
        user = self.users.get(user_id)
        if actor_id != user_id:
            raise ForbiddenError(f"User {actor_id} cannot delete user {user_id}")
        if self.users.has_dependents(user_id):
            raise ValidationError(
                f"User {user_id} still has items, bookings, requests or comments"
            )
        self.users.delete(user)
        logger.info("User %s deleted", user_id)
