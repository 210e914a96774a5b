from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from prospector.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OwnerPoolEntry(Base):
    """Role pool record maintained by the role-management service.

    The ingestion core only ever reads this table.
    """

    __tablename__ = "owner_pool_entry"

    owner_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    tenant_roles: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    regions: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def label(self) -> str:
        return self.display_name or self.email or self.owner_id


class RotationCursor(Base):
    __tablename__ = "rotation_cursor"

    scope_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    region: Mapped[str] = mapped_column(String(64), nullable=False)
    last_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (Index("ix_rotation_cursor_tenant", "tenant_id"),)
