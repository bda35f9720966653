"""Parse the `;`-delimited sales export into records."""

from __future__ import annotations

import codecs
import csv
import io
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from buyerlookup.core.errors import ConfigError, ParseError
from buyerlookup.core.logger import get_logger

from .models import PURCHASER_EMAIL, ParsedTable, Record

LOGGER = get_logger("lookup.parser")

DEFAULT_DELIMITER = ";"
DEFAULT_ENCODING = "utf-8-sig"
ROW_POLICY_ENV = "BUYERLOOKUP_ROW_POLICY"
BOM = "\ufeff"


class RowPolicy(str, Enum):
    """How rows whose cell count differs from the header are handled."""

    TOLERANT = "tolerant"
    STRICT = "strict"


@dataclass(frozen=True, slots=True)
class ParserOptions:
    """Delimiter/encoding contract of the export."""

    delimiter: str = DEFAULT_DELIMITER
    encoding: str = DEFAULT_ENCODING
    row_policy: RowPolicy = RowPolicy.TOLERANT

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ParserOptions":
        """Build options from a profile ``parser`` section, honouring env overrides."""

        data = data or {}
        delimiter = str(data.get("delimiter", DEFAULT_DELIMITER))
        if len(delimiter) != 1:
            raise ConfigError(f"parser.delimiter must be a single character: {delimiter!r}")

        encoding = str(data.get("encoding", DEFAULT_ENCODING))
        try:
            codecs.lookup(encoding)
        except LookupError as exc:
            raise ConfigError(f"Unknown parser.encoding: {encoding}") from exc

        policy_raw = os.getenv(ROW_POLICY_ENV) or data.get("row_policy", RowPolicy.TOLERANT.value)
        try:
            row_policy = RowPolicy(str(policy_raw).strip().lower())
        except ValueError as exc:
            allowed = ", ".join(p.value for p in RowPolicy)
            raise ConfigError(f"row_policy must be one of {allowed}: {policy_raw!r}") from exc

        return cls(delimiter=delimiter, encoding=encoding, row_policy=row_policy)


def _decode(payload: bytes | str, encoding: str) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return payload.decode(encoding)
    except UnicodeDecodeError as exc:
        raise ParseError(f"payload is not valid {encoding} ({exc.reason} at byte {exc.start})") from exc


def _is_blank(cells: Sequence[str]) -> bool:
    return not cells or (len(cells) == 1 and not cells[0].strip())


def _normalize_header(cells: Sequence[str]) -> tuple[str, ...]:
    names: list[str] = []
    taken: set[str] = set()
    counters: dict[str, int] = {}
    for idx, cell in enumerate(cells):
        base = cell.strip()
        if idx == 0:
            base = base.lstrip(BOM)
        name = base
        # Repeated names become name_1, name_2, ... skipping names already in use.
        while name in taken:
            counters[base] = counters.get(base, 0) + 1
            name = f"{base}_{counters[base]}"
        taken.add(name)
        names.append(name)
    return tuple(names)


def _split_line(line: str, delimiter: str) -> tuple[list[str], bool]:
    """Split one physical line into cells.

    Returns the cells and whether the line's quoting was broken. A line with an
    unbalanced ``"`` is re-read with quoting disabled so it cannot swallow the
    lines after it.
    """

    if line.count('"') % 2 == 0:
        try:
            return next(csv.reader([line], delimiter=delimiter, strict=True), []), False
        except csv.Error as exc:
            LOGGER.debug("lookup.parse bad_quoting error=%s", exc)
    cells = next(csv.reader([line], delimiter=delimiter, quoting=csv.QUOTE_NONE), [])
    return cells, True


def parse_payload(payload: bytes | str, options: ParserOptions | None = None) -> ParsedTable:
    """Parse a whole export payload.

    Every physical line is one row. The first non-blank line is the header and
    blank lines are skipped. Rows with fewer cells than the header are padded
    with empty strings and extra cells are dropped; under ``RowPolicy.STRICT``
    such rows are skipped instead. A row with broken quoting is split on the
    delimiter as-is and handled like any other irregular row.

    Raises:
        ParseError: if the payload cannot be decoded or no header row is
            present. No partial result is returned.
    """

    opts = options or ParserOptions()
    text = _decode(payload, opts.encoding)

    header: tuple[str, ...] | None = None
    records: list[Record] = []
    skipped = 0
    irregular = 0
    for line_num, line in enumerate(io.StringIO(text, newline=""), start=1):
        try:
            cells, broken = _split_line(line, opts.delimiter)
        except csv.Error as exc:
            skipped += 1
            LOGGER.warning("lookup.parse unreadable_row line=%d error=%s", line_num, exc)
            continue
        if _is_blank(cells):
            continue
        if header is None:
            header = _normalize_header(cells)
            continue
        width = len(header)
        if broken or len(cells) != width:
            if opts.row_policy is RowPolicy.STRICT:
                skipped += 1
                LOGGER.debug(
                    "lookup.parse skip_row line=%d cells=%d expected=%d broken_quotes=%s",
                    line_num,
                    len(cells),
                    width,
                    broken,
                )
                continue
            irregular += 1
            cells = (list(cells) + [""] * width)[:width]
        records.append(Record(dict(zip(header, cells))))

    if header is None:
        raise ParseError("payload has no header row")
    if PURCHASER_EMAIL not in header:
        LOGGER.warning("lookup.parse header is missing column %r", PURCHASER_EMAIL)
    if irregular or skipped:
        LOGGER.warning(
            "lookup.parse irregular rows policy=%s padded_or_truncated=%d skipped=%d",
            opts.row_policy.value,
            irregular,
            skipped,
        )
    LOGGER.info("Loaded %d rows", len(records))
    return ParsedTable(header=header, records=tuple(records), skipped_rows=skipped, irregular_rows=irregular)


def serialize_records(
    header: Sequence[str],
    records: Iterable[Mapping[str, str]],
    *,
    delimiter: str = DEFAULT_DELIMITER,
) -> str:
    """Write records back out in the export format (header first)."""

    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\r\n")
    writer.writerow(header)
    for record in records:
        writer.writerow([record.get(name, "") for name in header])
    return buffer.getvalue()


__all__ = [
    "ParserOptions",
    "RowPolicy",
    "parse_payload",
    "serialize_records",
]
