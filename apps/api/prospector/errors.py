from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ProspectorError(Exception):
    """Base class for failures surfaced by the ingestion and scoring core."""


class AuthorizationError(ProspectorError):
    """Raised when a call arrives without an authenticated principal."""


@dataclass(frozen=True, slots=True)
class FieldError:
    record_index: int | None
    field: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"record_index": self.record_index, "field": self.field, "reason": self.reason}


class ValidationError(ProspectorError):
    """One or more input records failed schema validation.

    Carries every field-level failure found so callers can report them in one
    response instead of fixing records one at a time.
    """

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        summary = "; ".join(f"{item.field}: {item.reason}" for item in self.errors[:5])
        super().__init__(summary or "validation failed")

    @property
    def fields(self) -> list[str]:
        return [item.field for item in self.errors]


class CommitFailure(ProspectorError):
    """The atomic write unit was rejected; nothing from it was applied."""


class CommitLimitExceeded(CommitFailure):
    def __init__(self, limit: int, attempted: int) -> None:
        self.limit = limit
        self.attempted = attempted
        super().__init__(f"commit unit limited to {limit} writes, attempted {attempted}")


class RotationConflictError(ProspectorError):
    def __init__(self, scope_key: str, attempts: int) -> None:
        self.scope_key = scope_key
        self.attempts = attempts
        super().__init__(f"rotation cursor '{scope_key}' changed concurrently {attempts} times")


class ScoringRunError(ProspectorError):
    """A recompute run failed and was rolled back in full."""
