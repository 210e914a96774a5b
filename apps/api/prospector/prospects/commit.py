from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from prospector.errors import CommitFailure, CommitLimitExceeded
from prospector.models.audit import AuditRecord
from prospector.prospects.models import Prospect, ProspectContact, ProspectSignal, utcnow

logger = logging.getLogger("prospector.prospects.commit")

ProspectKey = tuple[str, str]


@dataclass(slots=True)
class ProspectUpsert:
    tenant_id: str
    prospect_id: str
    fields: dict[str, Any]
    defaults: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> ProspectKey:
        return (self.tenant_id, self.prospect_id)


@dataclass(slots=True)
class ChildInsert:
    model: type[ProspectContact] | type[ProspectSignal]
    tenant_id: str
    prospect_id: str
    values: dict[str, Any]

    @property
    def key(self) -> ProspectKey:
        return (self.tenant_id, self.prospect_id)


@dataclass(slots=True)
class AuditAppend:
    type: str
    tenant_id: str
    prospect_id: str
    by: str
    correlation_id: str | None = None


class CommitUnit:
    """Accumulates every write of one call and applies them all-or-nothing.

    The unit refuses to grow beyond ``max_writes``; the check happens while
    staging so an oversized call fails before anything reaches storage. Upserts
    of an identity already staged in this unit merge into the earlier write.
    Staged writes are flushed in chunks of ``flush_chunk_size`` inside a single
    database transaction.
    """

    def __init__(self, max_writes: int, flush_chunk_size: int = 100) -> None:
        if max_writes <= 0:
            raise ValueError("max_writes must be positive")
        self.max_writes = max_writes
        self.flush_chunk_size = max(1, flush_chunk_size)
        self._writes: list[ProspectUpsert | ChildInsert | AuditAppend] = []
        self._upserts: dict[ProspectKey, ProspectUpsert] = {}
        self._committed = False

    def __len__(self) -> int:
        return len(self._writes)

    @property
    def remaining(self) -> int:
        return self.max_writes - len(self._writes)

    def ensure_capacity(self, additional: int) -> None:
        if self._committed:
            raise CommitFailure("commit unit already committed")
        if len(self._writes) + additional > self.max_writes:
            raise CommitLimitExceeded(self.max_writes, len(self._writes) + additional)

    def stage_prospect_upsert(
        self,
        tenant_id: str,
        prospect_id: str,
        fields: dict[str, Any],
        defaults: dict[str, Any] | None = None,
    ) -> ProspectUpsert:
        key = (tenant_id, prospect_id)
        staged = self._upserts.get(key)
        if staged is not None:
            self.ensure_capacity(0)
            staged.fields.update(fields)
            for name, value in (defaults or {}).items():
                staged.defaults.setdefault(name, value)
            return staged

        self.ensure_capacity(1)
        upsert = ProspectUpsert(tenant_id=tenant_id, prospect_id=prospect_id, fields=dict(fields), defaults=dict(defaults or {}))
        self._upserts[key] = upsert
        self._writes.append(upsert)
        return upsert

    def stage_contact(self, tenant_id: str, prospect_id: str, values: dict[str, Any]) -> None:
        self._stage_child(ProspectContact, tenant_id, prospect_id, values)

    def stage_signal(self, tenant_id: str, prospect_id: str, values: dict[str, Any]) -> None:
        self._stage_child(ProspectSignal, tenant_id, prospect_id, values)

    def stage_audit(
        self,
        type: str,
        tenant_id: str,
        prospect_id: str,
        by: str,
        correlation_id: str | None = None,
    ) -> None:
        self.ensure_capacity(1)
        self._writes.append(
            AuditAppend(type=type, tenant_id=tenant_id, prospect_id=prospect_id, by=by, correlation_id=correlation_id)
        )

    def staged_fields(self, tenant_id: str, prospect_id: str) -> dict[str, Any]:
        staged = self._upserts.get((tenant_id, prospect_id))
        return dict(staged.fields) if staged is not None else {}

    def commit(self, session: Session) -> int:
        self.ensure_capacity(0)
        now = utcnow()
        parents: dict[ProspectKey, Prospect] = {}
        try:
            for position, write in enumerate(self._writes, start=1):
                if isinstance(write, ProspectUpsert):
                    parents[write.key] = self._apply_upsert(session, write, now)
                elif isinstance(write, ChildInsert):
                    self._apply_child(session, write, parents, now)
                else:
                    session.add(
                        AuditRecord(
                            type=write.type,
                            tenant_id=write.tenant_id,
                            prospect_id=write.prospect_id,
                            by=write.by,
                            correlation_id=write.correlation_id,
                            at=now,
                        )
                    )
                if position % self.flush_chunk_size == 0:
                    session.flush()
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("commit.failed", extra={"record_count": len(self._writes), "error": str(exc)})
            raise CommitFailure(f"atomic commit rejected: {exc}") from exc
        except CommitFailure:
            session.rollback()
            raise

        self._committed = True
        return len(self._writes)

    def _stage_child(
        self,
        model: type[ProspectContact] | type[ProspectSignal],
        tenant_id: str,
        prospect_id: str,
        values: dict[str, Any],
    ) -> None:
        self.ensure_capacity(1)
        self._writes.append(ChildInsert(model=model, tenant_id=tenant_id, prospect_id=prospect_id, values=dict(values)))

    @staticmethod
    def _apply_upsert(session: Session, write: ProspectUpsert, now: datetime) -> Prospect:
        existing = session.get(Prospect, write.key)
        if existing is None:
            values = {**write.defaults, **write.fields, "created_at": now, "updated_at": now}
            values.update(tenant_id=write.tenant_id, id=write.prospect_id)
            prospect = Prospect(**values)
            session.add(prospect)
            return prospect

        for name, value in write.fields.items():
            setattr(existing, name, value)
        existing.updated_at = now
        return existing

    @staticmethod
    def _apply_child(session: Session, write: ChildInsert, parents: dict[ProspectKey, Prospect], now: datetime) -> None:
        parent = parents.get(write.key) or session.get(Prospect, write.key)
        if parent is None:
            raise CommitFailure(f"parent prospect {write.tenant_id}/{write.prospect_id} is not staged")
        child = write.model(**write.values, created_at=now)
        child.prospect = parent
        session.add(child)
