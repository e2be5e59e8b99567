from __future__ import annotations
import io
import logging
from enum import Enum
from dataclasses import dataclass

from sqlite_reader.consts import (
    CELL_POINTER_SIZE,
    DB_FILE_HEADER_SIZE,
    INTERIOR_PAGE_HEADER_SIZE,
    LEAF_PAGE_HEADER_SIZE,
    MAX_PAGE_SIZE,
    OVERFLOW_POINTER_SIZE,
)
from sqlite_reader.exceptions import CorruptPage, IoFailure, TruncatedInput, UnsupportedQuery
from sqlite_reader.header import FileHeader
from sqlite_reader.reading import page_start, read_varint

from typing import List, BinaryIO, Optional

logger = logging.getLogger(__name__)


@dataclass
class Cell:
    """
    One row of a table leaf page: its row id and the full record payload, with
    any part that spilled onto overflow pages already stitched back together.
    """

    row_id: int
    payload_len: int
    payload: bytes


class PageType(Enum):
    INTERIOR_INDEX = 0x02
    INTERIOR_TABLE = 0x05
    """
    Page type used once a table no longer fits in a single page. Its cells only hold
    child page numbers and row id keys, the rows themselves live in the leaf pages
    below it. Reading through interior pages is not supported.
    """
    LEAF_INDEX = 0x0A
    LEAF_TABLE = 0x0D

    @property
    def is_interior(self) -> bool:
        return self in (PageType.INTERIOR_INDEX, PageType.INTERIOR_TABLE)


class Page:
    number: int
    data: bytes
    header_offset: int
    page_type: PageType
    first_freeblock: int
    cell_count: int
    cell_area_start: int
    fragmented_free_bytes: int
    cell_pointer_array: List[int]
    right_most_pointer: Optional[int]  # Only present in inner page headers

    @staticmethod
    def from_file(
        database_file: BinaryIO, page_number: int, file_header: FileHeader
    ) -> Page:
        """
        Loads the database page with the given 1-based number.
        Parses the page header as described in https://www.sqlite.org/fileformat2.html#b_tree_pages
        and, based on that, loads the cell pointer array
        """
        instance = Page()
        instance.number = page_number
        instance.data = read_page(database_file, page_number, file_header)

        # For the first page, we must skip the 100 byte database header
        instance.header_offset = DB_FILE_HEADER_SIZE if page_number == 1 else 0
        header = instance.data[instance.header_offset :]

        page_type_int = header[0]
        try:
            instance.page_type = PageType(page_type_int)
        except ValueError:
            raise CorruptPage(f"Invalid page type {page_type_int} on page {page_number}")

        instance.first_freeblock = int.from_bytes(header[1:3], "big")
        instance.cell_count = int.from_bytes(header[3:5], "big")
        # Zero stands for 65536, which only happens on an empty page of maximum size
        instance.cell_area_start = int.from_bytes(header[5:7], "big") or MAX_PAGE_SIZE
        instance.fragmented_free_bytes = header[7]

        if instance.page_type.is_interior:
            instance.right_most_pointer = int.from_bytes(header[8:12], "big")
            header_size = INTERIOR_PAGE_HEADER_SIZE
        else:
            instance.right_most_pointer = None
            header_size = LEAF_PAGE_HEADER_SIZE

        instance.cell_pointer_array = Page.__read_cell_pointers(
            instance.data,
            instance.header_offset + header_size,
            instance.cell_count,
            file_header.usable_size,
        )

        logger.debug(
            "Loaded page %d: %s with %d cells",
            page_number,
            instance.page_type.name,
            instance.cell_count,
        )
        return instance

    def read_cells(
        self, database_file: BinaryIO, file_header: FileHeader
    ) -> List[Cell]:
        """
        Returns the cells of a table leaf page in cell pointer order, following the
        overflow chain of every cell whose payload does not fit in this page.
        """
        if self.page_type == PageType.INTERIOR_TABLE:
            raise UnsupportedQuery(
                f"Page {self.number} is an interior page, tables spanning multiple pages are not supported"
            )
        if self.page_type != PageType.LEAF_TABLE:
            raise CorruptPage(
                f"Expected a table leaf page at page {self.number}, found {self.page_type.name}"
            )

        return [
            self.__read_cell(database_file, file_header, cell_pointer)
            for cell_pointer in self.cell_pointer_array
        ]

    def __read_cell(
        self, database_file: BinaryIO, file_header: FileHeader, cell_pointer: int
    ) -> Cell:
        # See https://saveriomiroddi.github.io/SQLIte-database-file-format-diagrams/ for why the reads are done
        usable_size = file_header.usable_size
        stream = io.BytesIO(self.data[:usable_size])
        stream.seek(cell_pointer)

        try:
            payload_len, _ = read_varint(stream)
            row_id, _ = read_varint(stream)
        except TruncatedInput:
            raise CorruptPage(f"Cell at offset {cell_pointer} of page {self.number} is truncated")

        if payload_len < 0:
            raise CorruptPage(f"Negative payload size {payload_len} on page {self.number}")

        local_size = local_payload_size(payload_len, usable_size)
        local_payload = stream.read(local_size)
        if len(local_payload) != local_size:
            raise CorruptPage(
                f"Cell at offset {cell_pointer} of page {self.number} runs past the end of the page"
            )

        if local_size == payload_len:
            return Cell(row_id, payload_len, local_payload)

        raw_pointer = stream.read(OVERFLOW_POINTER_SIZE)
        if len(raw_pointer) != OVERFLOW_POINTER_SIZE:
            raise CorruptPage(f"Overflow pointer of cell at offset {cell_pointer} is truncated")

        first_overflow_page = int.from_bytes(raw_pointer, "big")
        overflow_payload = read_overflow_chain(
            database_file, file_header, first_overflow_page, payload_len - local_size
        )
        return Cell(row_id, payload_len, local_payload + overflow_payload)

    #  The cell pointer array consists of K 2-byte integer offsets to the cell contents.
    @staticmethod
    def __read_cell_pointers(
        data: bytes, start: int, cell_count: int, usable_size: int
    ) -> List[int]:
        end = start + cell_count * CELL_POINTER_SIZE
        if end > usable_size:
            raise CorruptPage(f"{cell_count} cell pointers do not fit in the page")

        pointers = [
            int.from_bytes(data[offset : offset + CELL_POINTER_SIZE], "big")
            for offset in range(start, end, CELL_POINTER_SIZE)
        ]

        for pointer in pointers:
            if pointer < end or pointer >= usable_size:
                raise CorruptPage(f"Cell pointer {pointer} lies outside the cell content area")

        return pointers


def local_payload_size(payload_len: int, usable_size: int) -> int:
    """
    Number of payload bytes a table leaf cell keeps on its own page, as described in
    https://www.sqlite.org/fileformat.html#cell_payload_overflow_pages

    Payloads up to usable_size - 35 bytes are stored whole. Larger ones keep enough
    bytes locally so that the spilled remainder fills its overflow pages exactly,
    falling back to the minimum local size when that would not fit.
    """
    max_local = usable_size - 35
    if payload_len <= max_local:
        return payload_len

    min_local = ((usable_size - 12) * 32 // 255) - 23
    local = min_local + (payload_len - min_local) % (usable_size - 4)
    if local <= max_local:
        return local
    return min_local


def read_overflow_chain(
    database_file: BinaryIO,
    file_header: FileHeader,
    first_page_number: int,
    remaining: int,
) -> bytes:
    """
    Reads ``remaining`` payload bytes from the overflow chain starting at ``first_page_number``.

    Every overflow page starts with the 4 byte number of the next page in the chain (0 on
    the last one) and carries up to usable_size - 4 bytes of payload.
    """
    capacity = file_header.usable_size - OVERFLOW_POINTER_SIZE
    fragments = []
    visited = set()
    page_number = first_page_number

    while remaining > 0:
        if page_number == 0:
            raise CorruptPage(f"Overflow chain ended with {remaining} payload bytes missing")
        if page_number in visited:
            raise CorruptPage(f"Overflow chain loops back to page {page_number}")
        visited.add(page_number)

        data = read_page(database_file, page_number, file_header)
        next_page_number = int.from_bytes(data[:OVERFLOW_POINTER_SIZE], "big")
        fragment_size = min(remaining, capacity)
        fragments.append(data[OVERFLOW_POINTER_SIZE : OVERFLOW_POINTER_SIZE + fragment_size])
        remaining -= fragment_size

        logger.debug(
            "Read %d bytes from overflow page %d, %d left", fragment_size, page_number, remaining
        )
        page_number = next_page_number

    if page_number != 0:
        raise CorruptPage(
            f"Overflow chain continues to page {page_number} past the end of the payload"
        )

    return b"".join(fragments)


def read_page(database_file: BinaryIO, page_number: int, file_header: FileHeader) -> bytes:
    if page_number < 1:
        raise CorruptPage(f"Invalid page number {page_number}")

    try:
        database_file.seek(page_start(page_number, file_header.page_size))
        data = database_file.read(file_header.page_size)
    except OSError as e:
        raise IoFailure(f"Failed to read page {page_number}: {e}") from e

    if len(data) != file_header.page_size:
        raise CorruptPage(f"Page {page_number} lies past the end of the database file")

    return data
