"""Substring search over one field of a dataset."""

from __future__ import annotations

from .models import PURCHASER_EMAIL, Dataset, Query, QueryResult, Record, normalize_term


def matches(record: Record, query: Query) -> bool:
    """True when the record's target field contains the query term."""

    value = record.get(query.field)
    if not value or not query.term:
        return False
    return query.term in value.lower()


def search(dataset: Dataset | None, term: str | Query, *, field: str = PURCHASER_EMAIL) -> QueryResult:
    """Return the records of ``dataset`` whose ``field`` contains ``term``.

    ``term`` may be raw user input or an already normalized :class:`Query`.
    Matching is case-insensitive, results keep source row order and repeated
    e-mails are not collapsed. A blank term or an unloaded dataset yields an
    empty result.
    """

    query = term if isinstance(term, Query) else Query(term=normalize_term(term), field=field)
    if dataset is None:
        return QueryResult(query=query, records=())
    if not query.term:
        return QueryResult(query=query, records=(), header=dataset.header, captured_at=dataset.captured_at)
    hits = tuple(record for record in dataset.records if matches(record, query))
    return QueryResult(query=query, records=hits, header=dataset.header, captured_at=dataset.captured_at)


__all__ = ["matches", "search"]
