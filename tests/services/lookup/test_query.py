"""Tests for the purchaser e-mail search."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from buyerlookup.core.errors import EmptyQueryError
from buyerlookup.services.lookup.models import (
    PURCHASER_NAME,
    Dataset,
    Query,
)
from buyerlookup.services.lookup.parser import parse_payload
from buyerlookup.services.lookup.query import search

CAPTURED = datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc)


def _dataset(payload: str) -> Dataset:
    return Dataset.from_table(parse_payload(payload), captured_at=CAPTURED)


def test_scenario_case_insensitive_exact_email() -> None:
    dataset = _dataset("Nome Comprador;E-mail Comprador\nAna;ana@x.com\nBia;bia@x.com\n")

    result = search(dataset, "ANA@X.COM")

    assert len(result) == 1
    assert result.records[0][PURCHASER_NAME] == "Ana"
    assert result.term == "ana@x.com"
    assert result.captured_at == CAPTURED


def test_substring_match_keeps_source_order_and_duplicates(sample_csv: str) -> None:
    dataset = _dataset(sample_csv)

    result = search(dataset, "  @X.com ")

    assert [r.reference_code for r in result] == ["REF-A", "REF-B", "REF-C"]


def test_search_is_idempotent(sample_csv: str) -> None:
    dataset = _dataset(sample_csv)

    assert search(dataset, "ana") == search(dataset, "ana")


def test_empty_field_never_matches(sample_csv: str) -> None:
    dataset = _dataset(sample_csv)

    result = search(dataset, "x")

    assert "1004" not in [r["Documento"] for r in result]


def test_missing_column_never_matches() -> None:
    dataset = _dataset("Nome Comprador;Código Referência\nAna;REF\n")

    assert len(search(dataset, "ana")) == 0


def test_blank_term_is_a_no_op(sample_csv: str) -> None:
    dataset = _dataset(sample_csv)

    result = search(dataset, "   ")

    assert result.records == ()


def test_header_only_dataset_returns_empty_result() -> None:
    dataset = _dataset("Nome Comprador;E-mail Comprador\n")

    assert search(dataset, "ana@x.com").records == ()


def test_unloaded_dataset_returns_empty_result() -> None:
    result = search(None, "ana@x.com")

    assert result.records == ()
    assert result.captured_at is None


def test_query_from_raw_rejects_blank_terms() -> None:
    with pytest.raises(EmptyQueryError):
        Query.from_raw(" \t ")
    assert Query.from_raw(" Ana@X.com ").term == "ana@x.com"


def test_to_frame_uses_dataset_header(sample_csv: str) -> None:
    result = search(_dataset(sample_csv), "bia")

    frame = result.to_frame()

    assert list(frame.columns) == ["Documento", "Código Referência", "Nome Comprador", "E-mail Comprador"]
    assert frame.iloc[0]["Código Referência"] == "REF-B"
