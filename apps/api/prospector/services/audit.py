from sqlalchemy import select
from sqlalchemy.orm import Session

from prospector.context import get_correlation_id
from prospector.models.audit import AuditRecord
from prospector.prospects.commit import CommitUnit

IMPORT_AUDIT_TYPE = "import"


def stage_import_audit(unit: CommitUnit, tenant_id: str, prospect_id: str, actor_id: str) -> None:
    unit.stage_audit(
        IMPORT_AUDIT_TYPE,
        tenant_id=tenant_id,
        prospect_id=prospect_id,
        by=actor_id,
        correlation_id=get_correlation_id(),
    )


def list_audit_records(db: Session, tenant_id: str, prospect_id: str) -> list[AuditRecord]:
    stmt = (
        select(AuditRecord)
        .where(AuditRecord.tenant_id == tenant_id, AuditRecord.prospect_id == prospect_id)
        .order_by(AuditRecord.at.asc(), AuditRecord.id.asc())
    )
    return list(db.scalars(stmt).all())
