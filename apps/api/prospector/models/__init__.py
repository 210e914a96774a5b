from prospector.models.audit import AuditRecord
from prospector.prospects.models import Prospect, ProspectContact, ProspectSignal
from prospector.routing.models import OwnerPoolEntry, RotationCursor

__all__ = [
    "AuditRecord",
    "OwnerPoolEntry",
    "Prospect",
    "ProspectContact",
    "ProspectSignal",
    "RotationCursor",
]
