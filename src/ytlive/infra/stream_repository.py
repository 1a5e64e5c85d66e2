"""
Stream persistence.

The in-memory store stays authoritative at runtime; this repository mirrors
every committed mutation into a ``streams`` table so records survive a
restart. Rows are written whole (upsert by id) and deleted on removal.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Generator
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Integer, String, Text, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Mapped, Session, mapped_column

from ..domain.schedule import ScheduleConfig
from ..domain.stream import StreamRecord
from ..domain.types import StreamStatus
from .db import Base, get_sessionmaker
from .exceptions import ValidationError

logger = logging.getLogger(__name__)


def _utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class StreamRow(Base):
    __tablename__ = "streams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    destination_key: Mapped[str] = mapped_column(String(255), nullable=False)
    media_path: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    schedule: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    stopped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    elapsed_seconds: Mapped[int | None] = mapped_column(Integer)
    last_elapsed_seconds: Mapped[int | None] = mapped_column(Integer)
    last_error: Mapped[str | None] = mapped_column(Text)

    @classmethod
    def from_record(cls, record: StreamRecord) -> StreamRow:
        return cls(
            id=record.id,
            name=record.name,
            destination_key=record.destination_key,
            media_path=record.media_path,
            status=record.status.value,
            schedule=record.schedule.to_dict(),
            created_at=_utc(record.created_at),
            started_at=_utc(record.started_at),
            stopped_at=_utc(record.stopped_at),
            elapsed_seconds=record.elapsed_seconds,
            last_elapsed_seconds=record.last_elapsed_seconds,
            last_error=record.last_error,
        )

    def to_record(self) -> StreamRecord:
        return StreamRecord(
            id=self.id,
            name=self.name,
            destination_key=self.destination_key,
            media_path=self.media_path,
            schedule=ScheduleConfig.from_dict(self.schedule),
            created_at=_utc(self.created_at),
            status=StreamStatus(self.status),
            started_at=_utc(self.started_at),
            stopped_at=_utc(self.stopped_at),
            elapsed_seconds=self.elapsed_seconds,
            last_elapsed_seconds=self.last_elapsed_seconds,
            last_error=self.last_error,
        )

    def __repr__(self) -> str:
        return f"<StreamRow(id={self.id}, name={self.name}, status={self.status})>"


class StreamRepository:
    """Mirrors stream records into the database."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._sessions = get_sessionmaker(engine)

    def create_schema(self) -> None:
        Base.metadata.create_all(self._engine)

    @contextlib.contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Unit of work: commit on success, roll back and re-raise on error."""
        db = self._sessions()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def save(self, record: StreamRecord) -> None:
        with self.session() as db:
            db.merge(StreamRow.from_record(record))

    def delete(self, record_id: str) -> None:
        with self.session() as db:
            row = db.get(StreamRow, record_id)
            if row is not None:
                db.delete(row)

    def load_all(self) -> list[StreamRecord]:
        """Every persisted record, oldest first. Unreadable rows are logged and skipped."""
        records: list[StreamRecord] = []
        with self.session() as db:
            rows = db.scalars(select(StreamRow).order_by(StreamRow.created_at)).all()
            for row in rows:
                try:
                    records.append(row.to_record())
                except (ValueError, ValidationError) as exc:
                    logger.warning("Skipping unreadable stream row %s: %s", row.id, exc)
        return records

    def on_change(self, record_id: str, record: StreamRecord | None) -> None:
        """Store change listener: upsert on write, delete on removal."""
        if record is None:
            self.delete(record_id)
        else:
            self.save(record)
