from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


Product = Literal["verity", "panorama", "lumina"]
Stage = Literal["P1", "nurture", "research", "hold"]
ProspectStatus = Literal["new", "working", "replied", "qualified", "disqualified"]
Priority = Literal["A", "B", "C"]

PRODUCTS: tuple[str, ...] = ("verity", "panorama", "lumina")


def _from_epoch_millis(millis: float) -> datetime:
    try:
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise ValueError("timestamp out of range") from None


def coerce_timestamp(value: Any) -> datetime | None:
    """Accept ISO strings, plain dates, datetimes or epoch milliseconds."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("invalid timestamp")
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return _from_epoch_millis(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.lstrip("-").isdigit():
            return _from_epoch_millis(int(text))
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError("invalid timestamp") from None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)
    raise ValueError("invalid timestamp")


class _InboundModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ContactIn(_InboundModel):
    name: str
    title: str | None = None
    email: str | None = None
    phone: str | None = None
    role: str | None = None


class SignalIn(_InboundModel):
    type: str
    title: str
    date: datetime | None = None
    source: str | None = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value: Any) -> datetime | None:
        return coerce_timestamp(value)


class ProspectIn(_InboundModel):
    tenant_id: str = Field(min_length=1)
    institution_name: str = Field(min_length=2)
    domain: str
    product: Product
    region: str = ""
    timezone: str = ""
    lms: str = ""
    score: int = Field(default=0, ge=0, le=100)
    stage: Stage = "research"
    wedges: list[str] = Field(default_factory=list)
    why_now: str = ""
    current_tools: list[str] = Field(default_factory=list)
    owner_id: str | None = Field(default=None, validation_alias=AliasChoices("ownerId", "ownerUid", "owner_id"))
    owner_name: str | None = None
    status: ProspectStatus = "new"
    priority: Priority = "B"
    last_contacted_at: datetime | None = None
    next_step: str = ""
    next_step_due_at: datetime | None = None
    contacts: list[ContactIn] = Field(default_factory=list)
    signals: list[SignalIn] = Field(default_factory=list)

    @field_validator("last_contacted_at", "next_step_due_at", mode="before")
    @classmethod
    def parse_timestamps(cls, value: Any) -> datetime | None:
        return coerce_timestamp(value)

    @field_validator("domain")
    @classmethod
    def normalize_domain(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError("domain must not be blank")
        return normalized


class ContactRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    title: str | None
    email: str | None
    phone: str | None
    role: str | None
    created_at: datetime


class SignalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    title: str
    date: datetime | None
    source: str | None
    created_at: datetime


class AuditRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    tenant_id: str
    prospect_id: str
    by: str
    at: datetime


class ProspectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tenant_id: str
    id: str
    institution_name: str
    domain: str
    product: str
    region: str
    timezone: str
    lms: str
    score: int
    stage: str
    wedges: list[str]
    why_now: str
    current_tools: list[str]
    owner_id: str | None
    owner_name: str | None
    status: str
    priority: str
    last_contacted_at: datetime | None
    next_step: str
    next_step_due_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ProspectDetailRead(ProspectRead):
    contacts: list[ContactRead] = Field(default_factory=list)
    signals: list[SignalRead] = Field(default_factory=list)
    audit: list[AuditRecordRead] = Field(default_factory=list)


class ImportResult(BaseModel):
    ok: bool = True
    count: int
