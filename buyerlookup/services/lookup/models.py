"""Record schema and value types for the sales export lookup."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Sequence

import pandas as pd

from buyerlookup.core.errors import EmptyQueryError

DOCUMENT = "Documento"
ESTABLISHMENT = "Estabelecimento"
PAYER_NAME = "Nome Cliente"
PAYER_EMAIL = "E-mail Cliente"
TRANSACTION_CODE = "Código da Transação"
TRANSACTION_DATE = "Data da Transação"
EXPECTED_RELEASE_DATE = "Data prevista de liberação"
BRAND = "Bandeira"
PAYMENT_METHOD = "Forma de Pagamento"
INSTALLMENT = "Parcela"
GROSS_VALUE = "Valor Bruto"
FEE_VALUE = "Valor Taxa"
NET_VALUE = "Valor Líquido"
STATUS = "Status"
CARD_NUMBER = "Número do Cartão"
NSU_CODE = "Código NSU"
AUTHORIZATION_CODE = "Código de Autorização"
DEVICE_ID = "Identificação da Maquininha"
SALE_CODE = "Código da Venda"
REFERENCE_CODE = "Código Referência"
PURCHASER_NAME = "Nome Comprador"
PURCHASER_EMAIL = "E-mail Comprador"
PIX_TX_ID = "Código TX ID (PIX)"
SPLIT_ID = "ID Split"

TRANSACTION_FIELDS: tuple[str, ...] = (
    DOCUMENT,
    ESTABLISHMENT,
    PAYER_NAME,
    PAYER_EMAIL,
    TRANSACTION_CODE,
    TRANSACTION_DATE,
    EXPECTED_RELEASE_DATE,
    BRAND,
    PAYMENT_METHOD,
    INSTALLMENT,
    GROSS_VALUE,
    FEE_VALUE,
    NET_VALUE,
    STATUS,
    CARD_NUMBER,
    NSU_CODE,
    AUTHORIZATION_CODE,
    DEVICE_ID,
    SALE_CODE,
    REFERENCE_CODE,
    PURCHASER_NAME,
    PURCHASER_EMAIL,
    PIX_TX_ID,
    SPLIT_ID,
)


class Record(Mapping[str, str]):
    """One export row: header field name -> raw cell text.

    The key set is fixed by the header the row was parsed under. Schema fields
    that the header did not carry are absent; the accessors below read them as
    empty strings.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, str]) -> None:
        self._values = MappingProxyType(dict(values))

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Record({dict(self._values)!r})"

    @property
    def reference_code(self) -> str:
        return self.get(REFERENCE_CODE, "")

    @property
    def purchaser_name(self) -> str:
        return self.get(PURCHASER_NAME, "")

    @property
    def purchaser_email(self) -> str:
        return self.get(PURCHASER_EMAIL, "")


@dataclass(frozen=True, slots=True)
class ParsedTable:
    """Parser output before it is stamped into a :class:`Dataset`."""

    header: tuple[str, ...]
    records: tuple[Record, ...]
    skipped_rows: int = 0
    irregular_rows: int = 0


@dataclass(frozen=True, slots=True)
class Dataset:
    """Immutable snapshot of the export taken at ``captured_at``."""

    header: tuple[str, ...]
    records: tuple[Record, ...]
    captured_at: datetime
    source: str | None = None

    @classmethod
    def from_table(cls, table: ParsedTable, *, captured_at: datetime, source: str | None = None) -> "Dataset":
        return cls(header=table.header, records=table.records, captured_at=captured_at, source=source)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)


def normalize_term(raw: str) -> str:
    """Trim and lower-case a user supplied search term."""

    return (raw or "").strip().lower()


@dataclass(frozen=True, slots=True)
class Query:
    """A normalized search term and the field it targets."""

    term: str
    field: str = PURCHASER_EMAIL

    @classmethod
    def from_raw(cls, raw: str, field: str = PURCHASER_EMAIL) -> "Query":
        """Build a query from user input, rejecting blank terms."""

        term = normalize_term(raw)
        if not term:
            raise EmptyQueryError("Search term is empty")
        return cls(term=term, field=field)


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Ordered matches of ``query`` within one dataset."""

    query: Query
    records: tuple[Record, ...]
    header: tuple[str, ...] = ()
    captured_at: datetime | None = None

    @property
    def term(self) -> str:
        return self.query.term

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def to_frame(self, columns: Sequence[str] | None = None) -> pd.DataFrame:
        """Return the matches as a DataFrame in source order."""

        cols = list(columns or self.header or TRANSACTION_FIELDS)
        rows = [[record.get(col, "") for col in cols] for record in self.records]
        return pd.DataFrame(rows, columns=cols, dtype="string")


__all__ = [
    "TRANSACTION_FIELDS",
    "REFERENCE_CODE",
    "PURCHASER_NAME",
    "PURCHASER_EMAIL",
    "Record",
    "ParsedTable",
    "Dataset",
    "Query",
    "QueryResult",
    "normalize_term",
]
