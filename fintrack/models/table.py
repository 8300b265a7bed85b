"""
Tabular Record Models

A Table is the unit of local persistence for one user: an ordered header
list, the data rows, and one metadata row.

DESIGN DECISION: Rows are loose mappings (header -> scalar), not typed
models. The table is schema-agnostic; typing happens one layer up, in the
transaction parser. This lets the schema grow by appending headers without
rewriting any stored row.
"""

from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator


Cell = Union[str, int, float, None]
Record = dict[str, Cell]

# The metadata row is told apart from data rows by this field/value pair
METADATA_FIELD = "type"
METADATA_MARKER = "metadata"

# Headers every new table starts with, before the caller's defaults
METADATA_HEADERS = ["type", "version", "email", "user_agent"]


class Table(BaseModel):
    """
    One user's tabular data.

    Invariant: headers are unique and ordered; every field a row may
    carry is listed in headers.
    """

    headers: list[str] = Field(
        default_factory=list,
        description="Ordered, unique column names"
    )
    rows: list[Record] = Field(
        default_factory=list,
        description="Data rows in insertion order"
    )
    metadata: Optional[Record] = Field(
        default=None,
        description="Format marker and owner, written once at creation"
    )

    @field_validator('headers')
    @classmethod
    def dedupe_headers(cls, v: list[str]) -> list[str]:
        """Drop repeated header names, keeping first occurrence order."""
        return list(dict.fromkeys(v))

    @property
    def version(self) -> str:
        """Format version recorded in metadata, or 'unknown'."""
        if self.metadata and self.metadata.get("version"):
            return str(self.metadata["version"])
        return "unknown"

    def ensure_headers(self, names) -> list[str]:
        """
        Append any of `names` missing from headers.

        Existing rows are not touched; absent fields read as null.
        Returns the headers that were added.
        """
        existing = set(self.headers)
        added = []
        for name in names:
            if name not in existing:
                existing.add(name)
                added.append(name)
        if added:
            self.headers = [*self.headers, *added]
        return added

    def data_rows(self) -> list[Record]:
        """Rows that are not metadata rows."""
        return [
            row for row in self.rows
            if row.get(METADATA_FIELD) != METADATA_MARKER
        ]


def new_table(
    identity: str,
    default_headers,
    version: str,
    user_agent: str = "",
) -> Table:
    """Create an empty table for `identity` with a metadata row."""
    metadata: Record = {
        "type": METADATA_MARKER,
        "version": version,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "email": identity,
        "user_agent": user_agent,
    }
    return Table(
        headers=[*METADATA_HEADERS, *default_headers],
        rows=[],
        metadata=metadata,
    )
