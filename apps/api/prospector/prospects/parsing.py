from __future__ import annotations

import csv
import io
from collections.abc import Mapping
from typing import Any

from prospector.errors import FieldError, ValidationError

LIST_COLUMNS = {"wedges", "currentTools", "current_tools"}


def _split_list_cell(raw: str) -> list[str]:
    normalized = raw.replace("|", ";")
    return [item.strip() for item in normalized.split(";") if item.strip()]


def parse_tabular(text: str) -> list[dict[str, Any]]:
    """Parse header-first delimited text into flat records.

    Empty cells are dropped so optional fields fall back to their defaults.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")), skipinitialspace=True)
    rows: list[dict[str, Any]] = []
    for raw_row in reader:
        row: dict[str, Any] = {}
        for key, value in raw_row.items():
            if key is None or not isinstance(value, str):
                continue
            column = key.strip()
            cell = value.strip()
            if not column or cell == "":
                continue
            row[column] = _split_list_cell(cell) if column in LIST_COLUMNS else cell
        if row:
            rows.append(row)
    return rows


def coerce_items(body: Any) -> list[Any]:
    if body is None or (isinstance(body, str) and not body.strip()):
        raise ValidationError([FieldError(None, "$", "no data provided")])
    if isinstance(body, str):
        return parse_tabular(body)
    if isinstance(body, list):
        return list(body)
    if isinstance(body, Mapping):
        return [dict(body)]
    raise ValidationError([FieldError(None, "$", "expected an object, an array of objects or delimited text")])
