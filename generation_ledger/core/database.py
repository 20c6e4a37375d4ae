"""SQLAlchemy engine and session factory.

Each ledger mutation runs inside one ``session_factory.begin()`` block, so the
record, the revision pointer and the emitted events commit together or not at
all.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from generation_ledger.core.config import settings


class Base(DeclarativeBase):
    pass


def create_session_factory(database_url: str | None = None) -> sessionmaker:
    """Create an engine for ``database_url``, ensure the schema and return a session factory."""
    url = database_url or settings.database_url

    engine_kwargs: dict = {}
    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite:"):
            # One shared connection, otherwise every checkout sees an empty database.
            engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **engine_kwargs)
    init_db(engine)
    return sessionmaker(engine, expire_on_commit=False)


def init_db(engine) -> None:
    from generation_ledger import models  # noqa: F401  (registers tables on Base)

    Base.metadata.create_all(engine)
