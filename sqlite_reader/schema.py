from __future__ import annotations
import logging
from typing import BinaryIO, List

from sqlite_reader.consts import SQLITE_INTERNAL_PREFIX, SQLITE_SCHEMA_PAGE
from sqlite_reader.exceptions import TableNotFound
from sqlite_reader.header import FileHeader
from sqlite_reader.pages import Page
from sqlite_reader.records import read_record
from sqlite_reader.rows import SchemaEntry, Table

logger = logging.getLogger(__name__)


class SchemaCatalog:
    """
    The decoded sqlite_schema table, which always lives in page 1.

    Entries are kept in cell order, which is the order the tables, indexes, views and
    triggers were created in.
    """

    rows: Table
    entries: List[SchemaEntry]

    def __init__(self, rows: Table):
        self.rows = rows
        self.entries = [SchemaEntry.from_row(row) for row in rows]

    @staticmethod
    def from_file(database_file: BinaryIO, file_header: FileHeader) -> SchemaCatalog:
        page = Page.from_file(database_file, SQLITE_SCHEMA_PAGE, file_header)

        rows = Table()
        for cell in page.read_cells(database_file, file_header):
            rows.append(read_record(cell.payload, file_header.text_encoding))

        logger.debug("Loaded %d sqlite_schema entries", len(rows))
        return SchemaCatalog(rows)

    @property
    def table_count(self) -> int:
        return sum(1 for entry in self.entries if entry.type == "table")

    def list_tables(self) -> List[str]:
        """User table names, skipping sqlite's own bookkeeping tables like sqlite_sequence"""
        return [
            entry.tbl_name
            for entry in self.entries
            if entry.type == "table"
            and not entry.tbl_name.startswith(SQLITE_INTERNAL_PREFIX)
        ]

    def find(self, table_name: str) -> SchemaEntry:
        entry = next(
            (entry for entry in self.entries if entry.tbl_name == table_name), None
        )
        if entry is None:
            raise TableNotFound(f"No such table: {table_name}")
        return entry
