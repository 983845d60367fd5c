"""Base model mixins.

- UUIDMixin: UUID primary key
- TimestampMixin: created_at and updated_at, maintained by the database
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from app.core.database import Base


class UUIDMixin:
    """Mixin for a generated UUID primary key.

    Example:
        >>> class UserCredential(Base, UUIDMixin, TimestampMixin):
        ...     __tablename__ = "user_credentials"
    """

    @declared_attr
    @classmethod
    def id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            primary_key=True,
            default=uuid.uuid4,
            index=True,
        )


class TimestampMixin:
    """Mixin for server-side created_at and updated_at timestamps.

    Bulk statements (upserts, UPDATE ... WHERE) bypass ``onupdate`` and must
    set updated_at themselves.
    """

    @declared_attr
    @classmethod
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
        )

    @declared_attr
    @classmethod
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
            onupdate=func.now(),
        )


__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
]
