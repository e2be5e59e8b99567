import io
from pathlib import Path

import pytest

from builders import build_btree_page, build_database, create_sqlite_database, leaf_cells, schema_record
from sqlite_reader.database import Database


@pytest.fixture
def sample_db_path(tmp_path: Path) -> Path:
    """apples and oranges, both small enough to fit in a single leaf page"""
    return create_sqlite_database(
        tmp_path / "sample.db",
        [
            ("CREATE TABLE apples (id integer primary key autoincrement, name text, color text)",),
            (
                "INSERT INTO apples (name, color) VALUES (?, ?)",
                [
                    ("Granny Smith", "Light Green"),
                    ("Fuji", "Red"),
                    ("Honeycrisp", "Blush Red"),
                    ("Golden Delicious", "Yellow"),
                ],
            ),
            ("CREATE TABLE oranges (id integer primary key autoincrement, name text, description text)",),
            (
                "INSERT INTO oranges (name, description) VALUES (?, ?)",
                [(f"orange {i}", "citrus" * i) for i in range(6)],
            ),
        ],
    )


@pytest.fixture
def sample_db(sample_db_path: Path) -> Database:
    with Database(sample_db_path) as database:
        yield database


@pytest.fixture
def overflow_db_path(tmp_path: Path) -> Path:
    """A single row whose text column is far larger than a page"""
    return create_sqlite_database(
        tmp_path / "overflow.db",
        [
            ("CREATE TABLE documents (body text, attachment blob)",),
            ("INSERT INTO documents VALUES (?, ?)", ("lorem ipsum " * 1000, bytes(range(256)) * 20)),
        ],
    )


@pytest.fixture
def multi_page_db_path(tmp_path: Path) -> Path:
    return create_sqlite_database(
        tmp_path / "multi_page.db",
        [
            ("CREATE TABLE numbers (n integer, padding text)",),
            ("INSERT INTO numbers VALUES (?, ?)", [(i, "x" * 100) for i in range(500)]),
        ],
    )


@pytest.fixture
def utf16_db_path(tmp_path: Path) -> Path:
    return create_sqlite_database(
        tmp_path / "utf16.db",
        [
            ("CREATE TABLE frutas (nombre text)",),
            ("INSERT INTO frutas VALUES (?)", [("piña",), ("limón",), ("🍓 fresa",)]),
        ],
        pragmas=("PRAGMA page_size = 4096", "PRAGMA encoding = 'UTF-16le'"),
    )


@pytest.fixture
def counted_db_file() -> io.BytesIO:
    """apples at page 2 with 7 rows, pears at page 3 with none"""
    schema_page = build_btree_page(
        leaf_cells([schema_record("apples", 2), schema_record("pears", 3)]), is_first_page=True
    )
    apples_page = build_btree_page([bytes([0x03, i, 0x02, 0x01, i]) for i in range(1, 8)])
    pears_page = build_btree_page([])
    return io.BytesIO(build_database([schema_page, apples_page, pears_page]))
