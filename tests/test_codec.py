"""Tests for the table text codec."""

from fintrack.models.table import Table
from fintrack.services.storage import deserialize, serialize


def _table_with_awkward_values() -> Table:
    return Table(
        headers=["type", "id", "description", "amount"],
        metadata={"type": "metadata", "id": None, "description": "v1", "amount": None},
        rows=[
            {"type": "expense", "id": "tx_1", "description": "Milk, eggs", "amount": "12.5"},
            {"type": "expense", "id": "tx_2", "description": 'The "good" coffee', "amount": "4"},
            {"type": "income", "id": "tx_3", "description": "line one\nline two", "amount": "900"},
            {"type": "income", "id": "tx_4", "description": None, "amount": "1"},
        ],
    )


class TestSerialize:
    """Tests for serialize."""

    def test_header_line_first(self):
        text = serialize(Table(headers=["id", "amount"], rows=[{"id": "a", "amount": "1"}]))
        assert text.splitlines() == ["id,amount", "a,1"]

    def test_quotes_and_commas_are_escaped(self):
        """Test values with delimiters are quoted with doubled quotes."""
        text = serialize(_table_with_awkward_values())
        assert '"Milk, eggs"' in text
        assert '"The ""good"" coffee"' in text
        assert '"line one\nline two"' in text

    def test_empty_table(self):
        assert serialize(Table()) == ""

    def test_missing_fields_written_empty(self):
        text = serialize(Table(headers=["id", "amount", "currency"], rows=[{"id": "a"}]))
        assert text.splitlines()[1] == "a,,"


class TestDeserialize:
    """Tests for deserialize."""

    def test_round_trip_preserves_table(self):
        """Test headers, metadata and rows survive a round trip in order."""
        table = _table_with_awkward_values()
        parsed = deserialize(serialize(table))
        assert parsed.headers == table.headers
        assert parsed.metadata == table.metadata
        assert parsed.rows == table.rows

    def test_metadata_only_recognized_on_second_line(self):
        """Test a metadata-looking row later in the file stays a data row."""
        text = "type,id\nexpense,tx_1\nmetadata,\n"
        parsed = deserialize(text)
        assert parsed.metadata is None
        assert len(parsed.rows) == 2

    def test_short_records_pad_with_null(self):
        parsed = deserialize("id,amount,currency\ntx_1,5\n")
        assert parsed.rows == [{"id": "tx_1", "amount": "5", "currency": None}]

    def test_extra_fields_dropped(self):
        parsed = deserialize("id,amount\ntx_1,5,surplus\n")
        assert parsed.rows == [{"id": "tx_1", "amount": "5"}]

    def test_blank_lines_skipped(self):
        parsed = deserialize("id,amount\n\ntx_1,5\n\n\ntx_2,6\n")
        assert [row["id"] for row in parsed.rows] == ["tx_1", "tx_2"]

    def test_all_null_row_survives_round_trip(self):
        """Test a row with every cell empty is kept, not read as a blank line."""
        table = Table(
            headers=["id", "amount", "currency"],
            rows=[
                {"id": "tx_1", "amount": "5", "currency": "USD"},
                {"id": None, "amount": None, "currency": None},
                {"id": "tx_2", "amount": "6", "currency": "EUR"},
            ],
        )
        assert deserialize(serialize(table)).rows == table.rows

    def test_single_column_null_row_survives_round_trip(self):
        table = Table(headers=["id"], rows=[{"id": None}, {"id": "x"}])
        parsed = deserialize(serialize(table))
        assert parsed.rows == [{"id": None}, {"id": "x"}]

    def test_byte_order_mark_ignored(self):
        """Test spreadsheet exports with a BOM parse cleanly."""
        parsed = deserialize("\ufeffid,amount\ntx_1,5")
        assert parsed.headers == ["id", "amount"]

    def test_crlf_line_endings(self):
        parsed = deserialize("id,amount\r\ntx_1,5\r\n")
        assert parsed.rows == [{"id": "tx_1", "amount": "5"}]

    def test_empty_text(self):
        """Test empty input yields an empty table rather than an error."""
        assert deserialize("").headers == []
        assert deserialize("   \n").rows == []
