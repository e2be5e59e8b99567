# record format
# https://www.sqlite.org/fileformat.html#record_format
# A record contains a header and a body, in that order
from __future__ import annotations
from dataclasses import dataclass, field
from typing import ClassVar, Iterator, List, Optional, Union

from sqlite_reader.exceptions import CorruptPage


@dataclass(frozen=True)
class Null:
    value: ClassVar[None] = None


@dataclass(frozen=True)
class Int8:
    value: int


@dataclass(frozen=True)
class Int16:
    value: int


@dataclass(frozen=True)
class Int32:
    value: int


@dataclass(frozen=True)
class Int64:
    value: int


@dataclass(frozen=True)
class Float64:
    value: float


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Blob:
    value: bytes


ColumnValue = Union[Null, Int8, Int16, Int32, Int64, Float64, Text, Blob]
Row = List[ColumnValue]


@dataclass
class Table:
    """In-memory result set. Rows are only ever appended."""

    rows: List[Row] = field(default_factory=list)

    def append(self, row: Row) -> None:
        self.rows.append(row)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __getitem__(self, index: int) -> Row:
        return self.rows[index]


# https://www.sqlite.org/fileformat.html#storage_of_the_sql_database_schema
@dataclass(frozen=True)
class SchemaEntry:
    type: str
    name: str
    tbl_name: str
    root_page: int
    sql: Optional[str]

    @staticmethod
    def from_row(row: Row) -> SchemaEntry:
        if len(row) != 5:
            raise CorruptPage(f"sqlite_schema rows have 5 columns, got {len(row)}")

        entry_type, name, tbl_name, root_page, sql = row
        for column in (entry_type, name, tbl_name):
            if not isinstance(column, Text):
                raise CorruptPage(f"Expected a text column in sqlite_schema, got {column}")

        match root_page:
            case Int8() | Int16() | Int32() | Int64():
                root_page_number = root_page.value
            case Null():
                root_page_number = 0
            case _:
                raise CorruptPage(f"Invalid root page in sqlite_schema: {root_page}")

        entry = SchemaEntry(
            type=entry_type.value,
            name=name.value,
            tbl_name=tbl_name.value,
            root_page=root_page_number,
            sql=sql.value if isinstance(sql, Text) else None,
        )

        if entry.type in ("table", "index") and entry.root_page < 1:
            # Views and triggers have no b-tree, everything else must point at a page
            raise CorruptPage(f"{entry.type} '{entry.name}' has invalid root page {entry.root_page}")

        return entry
