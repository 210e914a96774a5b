from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from prospector.routing.models import OwnerPoolEntry

ELIGIBLE_ROLES = frozenset({"sdr", "admin"})
REGION_WILDCARD = "ALL"


def is_eligible(entry: OwnerPoolEntry, tenant_id: str, region: str | None) -> bool:
    roles = entry.tenant_roles or {}
    if roles.get(tenant_id) not in ELIGIBLE_ROLES:
        return False
    regions = entry.regions
    # None is unrestricted; an empty list matches no region
    if regions is None:
        return True
    return REGION_WILDCARD in regions or (bool(region) and region in regions)


class OwnerPoolResolver:
    """Reads the externally managed role pool and narrows it to one scope.

    Results are ordered by ``owner_id`` so that rotation indices computed on
    one call line up with the pool seen by the next.
    """

    def resolve_pool(self, session: Session, tenant_id: str, region: str | None) -> list[OwnerPoolEntry]:
        rows = session.scalars(select(OwnerPoolEntry).order_by(OwnerPoolEntry.owner_id.asc())).all()
        return [row for row in rows if is_eligible(row, tenant_id, region)]
