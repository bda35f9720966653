"""Purchaser lookup over the sales export."""

from .controller import ControllerView, RefreshController, RefreshState
from .models import (
    PURCHASER_EMAIL,
    PURCHASER_NAME,
    REFERENCE_CODE,
    TRANSACTION_FIELDS,
    Dataset,
    ParsedTable,
    Query,
    QueryResult,
    Record,
)
from .parser import ParserOptions, RowPolicy, parse_payload, serialize_records
from .query import search
from .store import DatasetStore

__all__ = [
    "ControllerView",
    "RefreshController",
    "RefreshState",
    "PURCHASER_EMAIL",
    "PURCHASER_NAME",
    "REFERENCE_CODE",
    "TRANSACTION_FIELDS",
    "Dataset",
    "ParsedTable",
    "Query",
    "QueryResult",
    "Record",
    "ParserOptions",
    "RowPolicy",
    "parse_payload",
    "serialize_records",
    "search",
    "DatasetStore",
]
