import datetime
import os
import pytest

os.environ["POSTGRES_URI"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from sqlmodel import SQLModel, Session

from .clock import FixedClock
from .database import engine
from .models import Booking, BookingStatus, Item, User

NOW = datetime.datetime(2025, 3, 10, 12, 0, tzinfo=datetime.timezone.utc)
HOUR = datetime.timedelta(hours=1)


@pytest.fixture(autouse=True)
def reset_database():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


def _save(session, record):
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def make_user(session, name="User1"):
    return _save(
        session,
        User(
            name=name,
            email=f"{name.lower()}@mail.com",
            hashed_password="not-a-real-hash",
        ),
    )


def make_item(session, owner, name="Drill", available=True):
    return _save(
        session,
        Item(
            name=name,
            description=f"{name} description",
            available=available,
            owner_id=owner.id,
        ),
    )


def make_booking(session, item, booker, start, end, status=BookingStatus.WAITING):
    return _save(
        session,
        Booking(
            item_id=item.id,
            booker_id=booker.id,
            start_time=start,
            end_time=end,
            status=status,
        ),
    )


@pytest.fixture
def owner(session):
    return make_user(session, "Owner")


@pytest.fixture
def booker(session):
    return make_user(session, "Booker")


@pytest.fixture
def item(session, owner):
    return make_item(session, owner)
