"""
Database Engine and Sessions

One engine per process, one Session per request (get_db).

Route handlers own the transaction: services add, flush and query, and the
handler commits once at the end. A multi-step write such as deleting a
book with its reviews, or a comment with its replies, is therefore all or
nothing. autoflush is off, so services call flush() before running an
aggregate query over rows they have just changed.
"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from bookworld.config import get_settings

settings = get_settings()


def _engine_options(database_url: str) -> dict:
    options: dict = {"pool_pre_ping": True, "echo": settings.debug}
    if database_url.startswith("sqlite"):
        # SQLite's default pool has no size settings
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class Base(DeclarativeBase):
    """Declarative base; Base.metadata is what Alembic compares against."""


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create missing tables directly. Deployed databases use Alembic."""
    Base.metadata.create_all(bind=engine)


def drop_tables() -> None:
    Base.metadata.drop_all(bind=engine)
