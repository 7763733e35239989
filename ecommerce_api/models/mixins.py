# ecommerce_api/models/mixins.py

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamps, also on backends that drop the offset (SQLite)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value)

    def process_result_value(self, value, dialect):
        return as_utc(value)


class TimestampMixin:
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=utcnow)


class SoftDeleteMixin:
    # is_deleted implies deleted_at is set
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(UTCDateTime, nullable=True)

    def soft_delete(self, at: datetime | None = None) -> None:
        now = utcnow()
        self.is_deleted = True
        self.deleted_at = as_utc(at) or now
        self.updated_at = now

    def restore(self) -> None:
        self.is_deleted = False
        self.deleted_at = None
        self.updated_at = utcnow()
