"""
Parsing of the 100 byte database header described in
https://www.sqlite.org/fileformat.html#the_database_header

offset  size  field
------  ----  -----
0       16    magic string "SQLite format 3\\0"
16      2     page size (1 means 65536)
18      1     file format write version
19      1     file format read version
20      1     reserved space at the end of each page
21      1     maximum embedded payload fraction (64)
22      1     minimum embedded payload fraction (32)
23      1     leaf payload fraction (32)
24      4     file change counter
28      4     database size in pages
32      4     first freelist trunk page
36      4     number of freelist pages
40      4     schema cookie
44      4     schema format number
48      4     default page cache size
52      4     largest root b-tree page (auto/incremental vacuum)
56      4     text encoding (1 utf-8, 2 utf-16le, 3 utf-16be)
60      4     user version
64      4     incremental vacuum mode
68      4     application id
72      20    reserved for expansion
92      4     version-valid-for number
96      4     SQLITE_VERSION_NUMBER
"""
from __future__ import annotations
import struct
from dataclasses import dataclass
from enum import IntEnum

from sqlite_reader.consts import (
    DB_FILE_HEADER_SIZE,
    MAX_PAGE_SIZE,
    MAX_PAGE_SIZE_MARKER,
    MIN_PAGE_SIZE,
    MIN_USABLE_SIZE,
    SQLITE_MAGIC,
)
from sqlite_reader.exceptions import (
    NotADatabaseFile,
    TruncatedInput,
    UnsupportedEncoding,
)

# Everything after the magic string, up to the reserved expansion area
HEADER_FIELDS_FMT = ">HBBBBBBIIIIIIIIIIII"
HEADER_FIELDS_OFFSET = 16
HEADER_VERSION_FMT = ">II"
HEADER_VERSION_OFFSET = 92


class TextEncoding(IntEnum):
    UTF8 = 1
    UTF16LE = 2
    UTF16BE = 3

    @property
    def codec(self) -> str:
        return {
            TextEncoding.UTF8: "utf-8",
            TextEncoding.UTF16LE: "utf-16-le",
            TextEncoding.UTF16BE: "utf-16-be",
        }[self]

    @property
    def errors(self) -> str:
        """
        Error handler used while decoding text columns.

        Invalid UTF-8 is carried through as surrogate escapes instead of failing the whole
        row, and lone UTF-16 surrogates are passed through as they are stored.
        """
        if self == TextEncoding.UTF8:
            return "surrogateescape"
        return "surrogatepass"


@dataclass(frozen=True)
class FileHeader:
    page_size: int
    reserved_space: int
    text_encoding: TextEncoding
    write_version: int = 1
    read_version: int = 1
    max_payload_fraction: int = 64
    min_payload_fraction: int = 32
    leaf_payload_fraction: int = 32
    file_change_counter: int = 0
    database_size: int = 0
    first_freelist_trunk_page: int = 0
    freelist_page_count: int = 0
    schema_cookie: int = 0
    schema_format: int = 4
    default_cache_size: int = 0
    largest_root_page: int = 0
    user_version: int = 0
    incremental_vacuum: int = 0
    application_id: int = 0
    version_valid_for: int = 0
    sqlite_version_number: int = 0

    @property
    def usable_size(self) -> int:
        """Bytes of every page available to the b-tree, once the reserved trailer is removed"""
        return self.page_size - self.reserved_space

    @property
    def database_size_is_valid(self) -> bool:
        # Legacy writers don't keep the in-header size up to date, in which case the
        # version-valid-for number won't match the change counter
        return self.database_size > 0 and self.file_change_counter == self.version_valid_for

    @staticmethod
    def from_bytes(data: bytes) -> FileHeader:
        if len(data) < DB_FILE_HEADER_SIZE:
            raise TruncatedInput(
                f"Database header needs {DB_FILE_HEADER_SIZE} bytes, got {len(data)}"
            )

        magic = data[: len(SQLITE_MAGIC)]
        if magic != SQLITE_MAGIC:
            raise NotADatabaseFile(f"Invalid magic string {magic!r}")

        (
            raw_page_size,
            write_version,
            read_version,
            reserved_space,
            max_payload_fraction,
            min_payload_fraction,
            leaf_payload_fraction,
            file_change_counter,
            database_size,
            first_freelist_trunk_page,
            freelist_page_count,
            schema_cookie,
            schema_format,
            default_cache_size,
            largest_root_page,
            raw_text_encoding,
            user_version,
            incremental_vacuum,
            application_id,
        ) = struct.unpack_from(HEADER_FIELDS_FMT, data, HEADER_FIELDS_OFFSET)
        version_valid_for, sqlite_version_number = struct.unpack_from(
            HEADER_VERSION_FMT, data, HEADER_VERSION_OFFSET
        )

        page_size = FileHeader._decode_page_size(raw_page_size)
        if page_size - reserved_space < MIN_USABLE_SIZE:
            raise NotADatabaseFile(
                f"Usable page size {page_size - reserved_space} is below {MIN_USABLE_SIZE}"
            )

        try:
            text_encoding = TextEncoding(raw_text_encoding)
        except ValueError:
            raise UnsupportedEncoding(f"Unknown text encoding: {raw_text_encoding}")

        return FileHeader(
            page_size=page_size,
            reserved_space=reserved_space,
            text_encoding=text_encoding,
            write_version=write_version,
            read_version=read_version,
            max_payload_fraction=max_payload_fraction,
            min_payload_fraction=min_payload_fraction,
            leaf_payload_fraction=leaf_payload_fraction,
            file_change_counter=file_change_counter,
            database_size=database_size,
            first_freelist_trunk_page=first_freelist_trunk_page,
            freelist_page_count=freelist_page_count,
            schema_cookie=schema_cookie,
            schema_format=schema_format,
            default_cache_size=default_cache_size,
            largest_root_page=largest_root_page,
            user_version=user_version,
            incremental_vacuum=incremental_vacuum,
            application_id=application_id,
            version_valid_for=version_valid_for,
            sqlite_version_number=sqlite_version_number,
        )

    @staticmethod
    def _decode_page_size(raw_page_size: int) -> int:
        if raw_page_size == MAX_PAGE_SIZE_MARKER:
            return MAX_PAGE_SIZE

        if (
            raw_page_size < MIN_PAGE_SIZE
            or raw_page_size > MAX_PAGE_SIZE
            or raw_page_size & (raw_page_size - 1)
        ):
            raise NotADatabaseFile(f"Invalid page size: {raw_page_size}")

        return raw_page_size
