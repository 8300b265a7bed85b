"""
Table Text Codec

Serializes a Table to comma-delimited text and back. The same text is
used for file export/import and as the content of the remote mirror.

Format:
- line 1: headers
- line 2 (optional): the metadata row, recognized by type == "metadata"
- one line per row after that

Values containing a comma, a quote or a line break are quoted, with
embedded quotes doubled. Quoted values may span lines.

DESIGN DECISION: deserialize is best-effort and never raises. Short
records read missing trailing fields as null, extra fields are dropped,
blank lines are skipped.
"""

import csv
import io

import structlog

from fintrack.models.table import METADATA_FIELD, METADATA_MARKER, Cell, Record, Table


logger = structlog.get_logger(__name__)


DELIMITER = ","
QUOTE_CHAR = '"'
LINE_TERMINATOR = "\n"


def _cell_text(value: Cell) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _line(values: list[str]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        delimiter=DELIMITER,
        quotechar=QUOTE_CHAR,
        lineterminator=LINE_TERMINATOR,
        quoting=csv.QUOTE_MINIMAL,
        doublequote=True,
    )
    writer.writerow(values)
    return buffer.getvalue()[:-len(LINE_TERMINATOR)]


def _row_values(headers: list[str], row: Record) -> list[str]:
    return [_cell_text(row.get(header)) for header in headers]


def serialize(table: Table) -> str:
    """Render a table as delimited text. A table without headers is ''."""
    if not table.headers:
        return ""

    lines = [_line(list(table.headers))]
    if table.metadata:
        lines.append(_line(_row_values(table.headers, table.metadata)))
    for row in table.rows:
        lines.append(_line(_row_values(table.headers, row)))
    return LINE_TERMINATOR.join(lines)


def _to_record(headers: list[str], values: list[str]) -> Record:
    record: Record = {}
    for index, header in enumerate(headers):
        value = values[index] if index < len(values) else ""
        record[header] = value if value != "" else None
    return record


def deserialize(text: str) -> Table:
    """Parse delimited text produced by serialize (or a spreadsheet export)."""
    if not text or not text.strip():
        return Table()

    reader = csv.reader(
        io.StringIO(text.lstrip("\ufeff"), newline=""),
        delimiter=DELIMITER,
        quotechar=QUOTE_CHAR,
        doublequote=True,
        strict=False,
    )

    records = []
    try:
        for values in reader:
            if values:
                records.append(values)
    except csv.Error as e:
        logger.warning("table_text_truncated", error=str(e), parsed_records=len(records))

    if not records:
        return Table()

    headers = [header.strip() for header in records[0]]
    table = Table(headers=headers)

    for position, values in enumerate(records[1:]):
        record = _to_record(headers, values)
        if position == 0 and record.get(METADATA_FIELD) == METADATA_MARKER:
            table.metadata = record
        else:
            table.rows.append(record)

    return table
