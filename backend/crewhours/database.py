from datetime import datetime

from sqlalchemy import DateTime, event, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from crewhours.core.timeutils import utcnow

# Concurrent week submissions on SQLite wait for the writer lock instead of failing.
SQLITE_BUSY_TIMEOUT_MS = 5000


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )


class SoftDeleteMixin:
    """Rows are hidden by stamping ``deleted_at``; every list query filters on it.

    Records, closings, invoices and the supporting tables all keep their
    history this way, so a backup or an invoice can still point at them.
    """

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()


def _configure_sqlite(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
    cursor.close()


def build_engine(database_url: str):
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}

    engine = create_async_engine(database_url, connect_args=connect_args)
    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _configure_sqlite)
    return engine


def build_session_factory(engine) -> async_sessionmaker[AsyncSession]:
    # Services read attributes of committed rows when building responses.
    return async_sessionmaker(engine, expire_on_commit=False)
