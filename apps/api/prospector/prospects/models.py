from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from prospector.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Prospect(Base):
    __tablename__ = "prospect"

    tenant_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    id: Mapped[str] = mapped_column(String(320), primary_key=True)
    institution_name: Mapped[str] = mapped_column(Text, nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    product: Mapped[str] = mapped_column(String(32), nullable=False)
    region: Mapped[str] = mapped_column(String(64), nullable=False, default="", server_default="")
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="", server_default="")
    lms: Mapped[str] = mapped_column(String(128), nullable=False, default="", server_default="")
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    stage: Mapped[str] = mapped_column(String(16), nullable=False, default="research", server_default="research")
    wedges: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    why_now: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    current_tools: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    owner_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    owner_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="new", server_default="new")
    priority: Mapped[str] = mapped_column(String(1), nullable=False, default="B", server_default="B")
    last_contacted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_step: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    next_step_due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    contacts: Mapped[list[ProspectContact]] = relationship(
        "ProspectContact",
        back_populates="prospect",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProspectContact.created_at",
    )
    signals: Mapped[list[ProspectSignal]] = relationship(
        "ProspectSignal",
        back_populates="prospect",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProspectSignal.created_at",
    )

    __table_args__ = (
        CheckConstraint("score >= 0 AND score <= 100", name="ck_prospect_score_range"),
        Index("ix_prospect_owner", "tenant_id", "owner_id"),
    )


class ProspectContact(Base):
    __tablename__ = "prospect_contact"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    prospect_id: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    prospect: Mapped[Prospect] = relationship("Prospect", back_populates="contacts")

    __table_args__ = (
        ForeignKeyConstraint(
            ["tenant_id", "prospect_id"],
            ["prospect.tenant_id", "prospect.id"],
            ondelete="CASCADE",
            name="fk_prospect_contact_parent",
        ),
        Index("ix_prospect_contact_parent", "tenant_id", "prospect_id"),
    )


class ProspectSignal(Base):
    __tablename__ = "prospect_signal"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    prospect_id: Mapped[str] = mapped_column(String(320), nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    source: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    prospect: Mapped[Prospect] = relationship("Prospect", back_populates="signals")

    __table_args__ = (
        ForeignKeyConstraint(
            ["tenant_id", "prospect_id"],
            ["prospect.tenant_id", "prospect.id"],
            ondelete="CASCADE",
            name="fk_prospect_signal_parent",
        ),
        Index("ix_prospect_signal_parent", "tenant_id", "prospect_id"),
    )
