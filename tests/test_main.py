"""End to end tests for the command line entry point."""

from pathlib import Path

import pytest

from builders import build_btree_page, build_database, encode_record, leaf_cells
from sqlite_reader.database import Database
from sqlite_reader.exceptions import IoFailure, NotADatabaseFile
from sqlite_reader.header import TextEncoding
from sqlite_reader.main import main


@pytest.fixture
def empty_db_path(tmp_path: Path) -> Path:
    path = tmp_path / "empty.db"
    path.write_bytes(build_database([build_btree_page([], is_first_page=True)]))
    return path


class TestDbInfo:
    def test_empty_database(self, empty_db_path: Path, capsys):
        assert main([str(empty_db_path), ".dbinfo"]) == 0
        assert capsys.readouterr().out == "database page size: 4096\nnumber of tables: 0\n"

    def test_sample_database(self, sample_db_path: Path, capsys):
        assert main([str(sample_db_path), ".dbinfo"]) == 0
        assert capsys.readouterr().out == "database page size: 4096\nnumber of tables: 3\n"

    def test_large_pages(self, tmp_path: Path, capsys):
        path = tmp_path / "large.db"
        path.write_bytes(
            build_database([build_btree_page([], page_size=65536, is_first_page=True)], page_size=65536)
        )
        assert main([str(path), ".dbinfo"]) == 0
        assert "database page size: 65536" in capsys.readouterr().out


class TestTables:
    def test_sample_database(self, sample_db_path: Path, capsys):
        assert main([str(sample_db_path), ".tables"]) == 0
        assert capsys.readouterr().out == "apples oranges\n"

    def test_utf16_database(self, utf16_db_path: Path, capsys):
        assert main([str(utf16_db_path), ".tables"]) == 0
        assert capsys.readouterr().out == "frutas\n"


class TestUndecodableNames:
    @pytest.fixture
    def bad_name_db_path(self, tmp_path: Path) -> Path:
        name = b"bad\xffname"
        table_record = encode_record(
            [5 * 2 + 13, len(name) * 2 + 13, len(name) * 2 + 13, 4, 0],
            b"table" + name + name + (2).to_bytes(4, "big"),
        )
        path = tmp_path / "bad.db"
        schema_page = build_btree_page(leaf_cells([table_record]), is_first_page=True)
        path.write_bytes(build_database([schema_page]))
        return path

    def test_tables_escapes_invalid_bytes(self, bad_name_db_path: Path, capsys):
        assert main([str(bad_name_db_path), ".tables"]) == 0
        assert capsys.readouterr().out == "bad\\udcffname\n"

    def test_dbinfo_counts_the_table(self, bad_name_db_path: Path, capsys):
        assert main([str(bad_name_db_path), ".dbinfo"]) == 0
        assert capsys.readouterr().out == "database page size: 4096\nnumber of tables: 1\n"


class TestCountQuery:
    def test_count(self, sample_db_path: Path, capsys):
        assert main([str(sample_db_path), "SELECT COUNT(*) FROM apples"]) == 0
        assert capsys.readouterr().out == "4\n"

    def test_missing_table(self, sample_db_path: Path, capsys):
        assert main([str(sample_db_path), "SELECT COUNT(*) FROM Apples"]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "No such table: Apples" in captured.err

    def test_unsupported_query(self, sample_db_path: Path, capsys):
        assert main([str(sample_db_path), "SELECT name FROM apples"]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.startswith("Error: ")

    def test_multi_page_table(self, multi_page_db_path: Path, capsys):
        assert main([str(multi_page_db_path), "SELECT COUNT(*) FROM numbers"]) == 1
        assert capsys.readouterr().out == ""


class TestFailures:
    def test_missing_file(self, tmp_path: Path, capsys):
        assert main([str(tmp_path / "missing.db"), ".dbinfo"]) == 1
        assert "Failed to open database file" in capsys.readouterr().err

    def test_not_a_database(self, tmp_path: Path, capsys):
        path = tmp_path / "notes.txt"
        path.write_bytes(b"hello " * 100)
        assert main([str(path), ".tables"]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Invalid magic string" in captured.err

    def test_empty_file(self, tmp_path: Path, capsys):
        path = tmp_path / "empty_file.db"
        path.write_bytes(b"")
        assert main([str(path), ".dbinfo"]) == 1

    def test_missing_arguments(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2


class TestDatabase:
    def test_properties(self, sample_db_path: Path):
        with Database(sample_db_path) as database:
            assert database.page_size == 4096
            assert database.header.usable_size == 4096
            assert database.header.text_encoding == TextEncoding.UTF8

    def test_closed_database(self, sample_db_path: Path):
        database = Database(sample_db_path)
        database.close()
        with pytest.raises(IoFailure, match="closed"):
            database.file

    def test_invalid_header_closes_file(self, tmp_path: Path):
        path = tmp_path / "bad.db"
        path.write_bytes(b"\x00" * 100)
        with pytest.raises(NotADatabaseFile):
            Database(path)
