from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace
from sqlalchemy.orm import Session, selectinload

from prospector.context import bind_caller
from prospector.core.config import get_settings
from prospector.errors import AuthorizationError, ProspectorError
from prospector.metrics import observe_import
from prospector.otel import mark_span_failed, tag_correlation
from prospector.prospects.commit import CommitUnit
from prospector.prospects.identity import normalize_id
from prospector.prospects.models import Prospect
from prospector.prospects.parsing import coerce_items
from prospector.prospects.schemas import AuditRecordRead, ImportResult, ProspectDetailRead, ProspectIn
from prospector.prospects.validation import validate_batch
from prospector.routing.assigner import RoundRobinAssigner
from prospector.services.audit import list_audit_records, stage_import_audit

logger = logging.getLogger("prospector.prospects.import")
tracer = trace.get_tracer("prospector.prospects.import")

_PROSPECT_FIELDS = (
    "tenant_id",
    "institution_name",
    "domain",
    "product",
    "region",
    "timezone",
    "lms",
    "score",
    "stage",
    "wedges",
    "why_now",
    "current_tools",
    "status",
    "priority",
    "last_contacted_at",
    "next_step",
    "next_step_due_at",
)


def _required_writes(records: list[tuple[str, ProspectIn]]) -> int:
    identities = {(record.tenant_id, prospect_id) for prospect_id, record in records}
    children = sum(len(record.contacts) + len(record.signals) for _, record in records)
    return len(identities) + children + len(records)


@dataclass(slots=True)
class ImportService:
    assigner: RoundRobinAssigner = field(default_factory=RoundRobinAssigner)

    def import_batch(self, session: Session, caller_id: str | None, raw_input: Any) -> ImportResult:
        if not caller_id or not str(caller_id).strip():
            raise AuthorizationError("authenticated caller required")

        settings = get_settings()
        started = time.perf_counter()
        with bind_caller(caller_id), tracer.start_as_current_span("prospects.import") as span:
            span.set_attribute("caller_id", caller_id)
            tag_correlation(span)
            try:
                items = coerce_items(raw_input)
                logger.info("import.started", extra={"caller_id": caller_id, "record_count": len(items)})

                validated = validate_batch(items)
                records = [(normalize_id(record.domain, record.product), record) for record in validated]

                unit = CommitUnit(max_writes=settings.commit_max_writes, flush_chunk_size=settings.commit_flush_chunk_size)
                unit.ensure_capacity(_required_writes(records))

                for prospect_id, record in records:
                    self._stage_record(session, unit, caller_id, prospect_id, record)

                unit.commit(session)
            except ProspectorError as exc:
                duration = time.perf_counter() - started
                observe_import("failed", duration)
                mark_span_failed(span, exc)
                logger.warning(
                    "import.failed",
                    extra={
                        "caller_id": caller_id,
                        "status": type(exc).__name__,
                        "error": str(exc),
                        "duration_ms": round(duration * 1000, 2),
                    },
                )
                raise

            duration = time.perf_counter() - started
            observe_import("succeeded", duration, record_count=len(records))
            span.set_attribute("processed_count", len(records))
            logger.info(
                "import.finished",
                extra={
                    "caller_id": caller_id,
                    "processed_count": len(records),
                    "duration_ms": round(duration * 1000, 2),
                },
            )
        return ImportResult(ok=True, count=len(records))

    def get_prospect(self, session: Session, tenant_id: str, prospect_id: str) -> ProspectDetailRead | None:
        prospect = session.get(
            Prospect,
            (tenant_id, prospect_id),
            options=[selectinload(Prospect.contacts), selectinload(Prospect.signals)],
        )
        if prospect is None:
            return None
        detail = ProspectDetailRead.model_validate(prospect)
        detail.audit = [AuditRecordRead.model_validate(row) for row in list_audit_records(session, tenant_id, prospect_id)]
        return detail

    def _stage_record(
        self,
        session: Session,
        unit: CommitUnit,
        caller_id: str,
        prospect_id: str,
        record: ProspectIn,
    ) -> None:
        supplied = record.model_fields_set
        payload = record.model_dump(include=set(_PROSPECT_FIELDS))
        fields = {name: value for name, value in payload.items() if name in supplied}
        # identity columns are always rewritten with their normalized values
        for name in ("tenant_id", "institution_name", "domain", "product"):
            fields[name] = payload[name]

        fields.update(self._owner_fields(session, record))
        unit.stage_prospect_upsert(record.tenant_id, prospect_id, fields, defaults=payload)

        for contact in record.contacts:
            unit.stage_contact(record.tenant_id, prospect_id, contact.model_dump())
        for signal in record.signals:
            unit.stage_signal(record.tenant_id, prospect_id, signal.model_dump())
        stage_import_audit(unit, record.tenant_id, prospect_id, caller_id)

    def _owner_fields(self, session: Session, record: ProspectIn) -> dict[str, Any]:
        if record.owner_id:
            return {"owner_id": record.owner_id, "owner_name": record.owner_name}

        chosen = self.assigner.assign(session, record.tenant_id, record.region)
        if chosen is None:
            return {}
        return {"owner_id": chosen.owner_id, "owner_name": chosen.label}
