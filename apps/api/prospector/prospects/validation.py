from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from prospector.errors import FieldError, ValidationError
from prospector.prospects.schemas import ProspectIn


def fold_product(raw: Mapping[str, Any]) -> dict[str, Any]:
    record = dict(raw)
    product = record.get("product")
    if isinstance(product, str):
        record["product"] = product.strip().lower()
    return record


def _field_path(loc: Sequence[Any]) -> str:
    return ".".join(str(part) for part in loc) or "$"


def validate_record(raw: Any, *, record_index: int | None = None) -> ProspectIn:
    if not isinstance(raw, Mapping):
        raise ValidationError([FieldError(record_index, "$", "record must be an object")])
    try:
        return ProspectIn.model_validate(dict(raw))
    except PydanticValidationError as exc:
        raise ValidationError(
            [FieldError(record_index, _field_path(error["loc"]), error["msg"]) for error in exc.errors()]
        ) from exc


def validate_batch(items: Sequence[Any]) -> list[ProspectIn]:
    """Validate every record, folding product case first; fail with all field errors at once."""
    records: list[ProspectIn] = []
    errors: list[FieldError] = []
    for index, raw in enumerate(items):
        candidate = fold_product(raw) if isinstance(raw, Mapping) else raw
        try:
            records.append(validate_record(candidate, record_index=index))
        except ValidationError as exc:
            errors.extend(exc.errors)
    if errors:
        raise ValidationError(errors)
    return records
