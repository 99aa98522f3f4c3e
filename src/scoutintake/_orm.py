"""SQLAlchemy tables backing the report ledger and schedule store.

:func:`create_schema` only creates missing tables on an engine it is
handed; :func:`open_engine` builds one from a database URL.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Engine, Integer, LargeBinary, String, Text, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class ReportRow(Base):
    """One submitted report and its lifecycle state (insertion order = ``id``)."""

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    event_key: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    subject_key: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    state: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    failure_reason: Mapped[str | None] = mapped_column(String(32), nullable=True)
    payload: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    superseded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    archive_event: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class IndividualRow(Base):
    """Schedule of one observer, stored as ``{"Ranges": [...]}`` JSON."""

    __tablename__ = "individuals"

    uuid: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    schedule: Mapped[str] = mapped_column(Text, nullable=False, default='{"Ranges":[]}')


def create_schema(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def open_engine(database_url: str) -> Engine:
    """Engine for *database_url* with the tables created."""
    engine = create_engine(database_url)
    create_schema(engine)
    return engine
