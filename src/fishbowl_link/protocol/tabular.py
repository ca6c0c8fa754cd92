"""CSV row transcoding for query results and import payloads.

Fishbowl ships tabular data as a list of CSV lines: the first line is the
header, the rest are data rows. ``rows()`` turns them into field maps and
``encode_rows()`` does the reverse for ImportRq bodies.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Mapping, Sequence


def parse_line(line: str) -> list[str]:
    """Split one CSV line into its fields."""
    return next(csv.reader([line]), [])


def rows(header_line: str, data_lines: Iterable[str]) -> list[dict[str, str]]:
    """Convert a header line plus data lines into field-to-value records.

    Short rows are padded with empty strings; extra trailing fields are dropped.

    Example:
        >>> rows("ID,Name", ['1,"A"', '2,"B"'])
        [{'ID': '1', 'Name': 'A'}, {'ID': '2', 'Name': 'B'}]

    """
    fields = parse_line(header_line)
    records: list[dict[str, str]] = []
    for values in csv.reader(data_lines):
        if not values:
            continue
        padded = values + [""] * (len(fields) - len(values))
        records.append(dict(zip(fields, padded, strict=False)))
    return records


def _format_line(values: Sequence[object]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="")
    writer.writerow(["" if v is None else v for v in values])
    return buffer.getvalue()


def encode_rows(records: Sequence[Mapping[str, object]], header: Sequence[str] | None = None) -> list[str]:
    """Encode records as CSV lines, header first.

    The header defaults to the keys of the first record in insertion order.
    """
    if header is None:
        header = list(records[0].keys()) if records else []
    lines = [_format_line(header)]
    lines.extend(_format_line([record.get(field) for field in header]) for record in records)
    return lines


def normalize_row_list(container: object) -> list[str]:
    """Extract ``Row`` lines from a ``Rows``/``Header`` container.

    The server collapses a single-row list into a bare string.
    """
    if not isinstance(container, Mapping):
        return []
    row = container.get("Row")
    if row is None:
        return []
    if isinstance(row, str):
        return [row]
    return [str(line) for line in row]
