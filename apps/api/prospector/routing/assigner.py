from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from prospector.core.config import get_settings
from prospector.errors import RotationConflictError
from prospector.metrics import observe_owner_assignment, observe_rotation_conflict
from prospector.routing.models import OwnerPoolEntry, RotationCursor, utcnow
from prospector.routing.pool import OwnerPoolResolver

logger = logging.getLogger("prospector.routing")

ANY_REGION = "ANY"


def rotation_scope_key(tenant_id: str, region: str | None) -> str:
    return f"{tenant_id}__{region or ANY_REGION}"


@dataclass(slots=True)
class RoundRobinAssigner:
    pool_resolver: OwnerPoolResolver = field(default_factory=OwnerPoolResolver)
    max_attempts: int | None = None

    def assign(self, session: Session, tenant_id: str, region: str | None) -> OwnerPoolEntry | None:
        pool = self.pool_resolver.resolve_pool(session, tenant_id, region)
        scope_key = rotation_scope_key(tenant_id, region)
        if not pool:
            observe_owner_assignment("unassigned")
            logger.info("owner.unassigned", extra={"tenant_id": tenant_id, "scope_key": scope_key, "pool_size": 0})
            return None

        index = self._advance_cursor(session, tenant_id, region or ANY_REGION, scope_key, len(pool))
        chosen = pool[index]
        observe_owner_assignment("assigned")
        logger.info(
            "owner.assigned",
            extra={
                "tenant_id": tenant_id,
                "scope_key": scope_key,
                "owner_id": chosen.owner_id,
                "pool_size": len(pool),
            },
        )
        return chosen

    def _advance_cursor(self, session: Session, tenant_id: str, region: str, scope_key: str, pool_size: int) -> int:
        attempts = self.max_attempts or get_settings().rotation_max_attempts
        for attempt in range(1, attempts + 1):
            current = session.execute(
                select(RotationCursor.last_index, RotationCursor.count).where(RotationCursor.scope_key == scope_key)
            ).one_or_none()

            if current is None:
                session.add(
                    RotationCursor(
                        scope_key=scope_key,
                        tenant_id=tenant_id,
                        region=region,
                        last_index=0,
                        count=1,
                    )
                )
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    self._record_conflict(scope_key, attempt)
                    continue
                return 0

            selected = (current.last_index + 1) % pool_size
            # count doubles as the version column: the write only lands if nobody advanced the cursor since our read.
            result = session.execute(
                update(RotationCursor)
                .where(RotationCursor.scope_key == scope_key, RotationCursor.count == current.count)
                .values(last_index=selected, count=current.count + 1, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                self._record_conflict(scope_key, attempt)
                continue
            session.commit()
            return selected

        raise RotationConflictError(scope_key, attempts)

    @staticmethod
    def _record_conflict(scope_key: str, attempt: int) -> None:
        observe_rotation_conflict()
        logger.warning("rotation.conflict", extra={"scope_key": scope_key, "attempt": attempt})
