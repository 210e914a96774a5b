from __future__ import annotations

import pytest

from prospector.errors import ValidationError
from prospector.prospects.parsing import coerce_items, parse_tabular
from prospector.prospects.validation import validate_batch


CSV_TEXT = (
    "\ufefftenantId,institutionName,domain,product,score,wedges,region\n"
    "tenant-a,Example University,example.edu,Verity,82,proctoring; integrity|ai,west\n"
    "\n"
    "tenant-a,Sample College,sample.edu,lumina,,,\n"
)


def test_parse_tabular_reads_header_rows() -> None:
    rows = parse_tabular(CSV_TEXT)

    assert len(rows) == 2
    assert rows[0]["tenantId"] == "tenant-a"
    assert rows[0]["wedges"] == ["proctoring", "integrity", "ai"]
    assert rows[0]["score"] == "82"
    assert "score" not in rows[1]
    assert "region" not in rows[1]


def test_tabular_rows_validate_with_defaults() -> None:
    first, second = validate_batch(parse_tabular(CSV_TEXT))

    assert first.score == 82
    assert first.product == "verity"
    assert first.region == "west"
    assert second.score == 0
    assert second.wedges == []


def test_coerce_items_shapes() -> None:
    assert coerce_items({"domain": "a.edu"}) == [{"domain": "a.edu"}]
    assert coerce_items([{"domain": "a.edu"}, {"domain": "b.edu"}]) == [{"domain": "a.edu"}, {"domain": "b.edu"}]
    assert coerce_items("domain,product\na.edu,verity\n") == [{"domain": "a.edu", "product": "verity"}]


@pytest.mark.parametrize("body", [None, "", "   \n", 42])
def test_coerce_items_rejects_missing_or_unknown_body(body: object) -> None:
    with pytest.raises(ValidationError):
        coerce_items(body)
