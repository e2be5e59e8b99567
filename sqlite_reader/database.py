from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import BinaryIO, Optional

from sqlite_reader.consts import DB_FILE_HEADER_SIZE
from sqlite_reader.exceptions import IoFailure
from sqlite_reader.header import FileHeader

logger = logging.getLogger(__name__)


class Database:
    """
    A database file opened for reading, along with its parsed header.

    The header is read once when opening and is what every later page and record
    read is decoded against. Use as a context manager so the file gets closed.
    """

    path: Path
    header: FileHeader

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._file: Optional[BinaryIO] = None

        try:
            self._file = open(self.path, "rb")
            header_bytes = self._file.read(DB_FILE_HEADER_SIZE)
            file_size = os.fstat(self._file.fileno()).st_size
        except OSError as e:
            self.close()
            raise IoFailure(f"Failed to open database file {self.path}: {e}") from e

        try:
            self.header = FileHeader.from_bytes(header_bytes)
        except Exception:
            self.close()
            raise
        logger.debug(
            "Opened %s: page size %d, usable size %d, %s text, %d pages",
            self.path,
            self.header.page_size,
            self.header.usable_size,
            self.header.text_encoding.name,
            file_size // self.header.page_size,
        )

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    @property
    def file(self) -> BinaryIO:
        if self._file is None:
            raise IoFailure(f"Database file {self.path} is closed")
        return self._file

    @property
    def page_size(self) -> int:
        return self.header.page_size
