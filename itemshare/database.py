from sqlmodel import create_engine, Session
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL, SQL_ECHO

if not DATABASE_URL or DATABASE_URL == "":
    raise ValueError("DATABASE URL not set")


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    kwargs = {"connect_args": {"check_same_thread": False}}
    # An in-memory database lives as long as its connection, so share one.
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(DATABASE_URL, echo=SQL_ECHO, **_engine_kwargs(DATABASE_URL))


def get_session():
    with Session(engine) as session:
        yield session
