"""
Decoding of table records, see https://www.sqlite.org/fileformat.html#record_format

A record starts with a header made of a varint holding the header size (itself
included) followed by one serial type varint per column. The body holds the
column values, back to back, in the same order:

| serial type     | meaning                          | body bytes  |
|-----------------|----------------------------------|-------------|
| 0               | NULL                             | 0           |
| 1 - 6           | big-endian signed integers       | 1,2,3,4,6,8 |
| 7               | big-endian IEEE 754 float        | 8           |
| 8, 9            | the integers 0 and 1             | 0           |
| 10, 11          | reserved for internal use        | -           |
| N >= 12, even   | BLOB of (N - 12) / 2 bytes       | variable    |
| N >= 13, odd    | TEXT of (N - 13) / 2 bytes       | variable    |
"""
import io
import struct
from typing import BinaryIO, List

from sqlite_reader.exceptions import CorruptPage, TruncatedInput, UnsupportedSerialType
from sqlite_reader.header import TextEncoding
from sqlite_reader.reading import read_exact, read_int, read_varint
from sqlite_reader.rows import (
    Blob,
    ColumnValue,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    Null,
    Row,
    Text,
)

# serial type -> (body size, value type)
INTEGER_SERIAL_TYPES = {
    1: (1, Int8),
    2: (2, Int16),
    3: (3, Int32),
    4: (4, Int32),
    5: (6, Int64),
    6: (8, Int64),
}
FLOAT_SERIAL_TYPE = 7
FLOAT_SIZE = 8


def serial_type_size(serial_type: int) -> int:
    """Number of body bytes used by a column of the given serial type"""
    if serial_type in (0, 8, 9):
        return 0
    if serial_type in INTEGER_SERIAL_TYPES:
        return INTEGER_SERIAL_TYPES[serial_type][0]
    if serial_type == FLOAT_SERIAL_TYPE:
        return FLOAT_SIZE
    if serial_type >= 12:
        return (serial_type - 12) // 2

    raise UnsupportedSerialType(f"Unknown serial type {serial_type}")


def read_record(payload: bytes, text_encoding: TextEncoding) -> Row:
    # Reference record format in https://saveriomiroddi.github.io/SQLIte-database-file-format-diagrams/
    stream = io.BytesIO(payload)
    header_size, num_header_bytes = read_varint(stream)

    if header_size < num_header_bytes or header_size > len(payload):
        raise CorruptPage(
            f"Record header size {header_size} does not fit a payload of {len(payload)} bytes"
        )

    i = num_header_bytes
    # read all the other bytes past the bytes used to declare the header size
    serial_types = []
    while i < header_size:
        serial_type, bytes_used = read_varint(stream)
        i += bytes_used
        serial_types.append(serial_type)

    if i != header_size:
        raise CorruptPage(f"Record header overran its declared size of {header_size} bytes")

    body_size = sum(serial_type_size(serial_type) for serial_type in serial_types)
    if body_size > len(payload) - header_size:
        raise TruncatedInput(
            f"Record body needs {body_size} bytes but only {len(payload) - header_size} follow the header"
        )

    return [
        read_column_value(stream, serial_type, text_encoding)
        for serial_type in serial_types
    ]


def read_column_value(
    stream: BinaryIO, serial_type: int, text_encoding: TextEncoding
) -> ColumnValue:
    if serial_type == 0:
        return Null()
    elif serial_type in INTEGER_SERIAL_TYPES:
        size, value_type = INTEGER_SERIAL_TYPES[serial_type]
        return value_type(read_int(stream, size, signed=True))
    elif serial_type == FLOAT_SERIAL_TYPE:
        return Float64(struct.unpack(">d", read_exact(stream, FLOAT_SIZE))[0])
    elif serial_type == 8:
        return Int8(0)
    elif serial_type == 9:
        return Int8(1)
    elif (serial_type >= 13) and (serial_type % 2 == 1):
        return Text(decode_text(read_exact(stream, serial_type_size(serial_type)), text_encoding))
    elif (serial_type >= 12) and (serial_type % 2 == 0):
        return Blob(read_exact(stream, serial_type_size(serial_type)))

    raise UnsupportedSerialType(f"Unknown serial type {serial_type}")


def decode_text(raw: bytes, text_encoding: TextEncoding) -> str:
    try:
        return raw.decode(text_encoding.codec, text_encoding.errors)
    except UnicodeDecodeError as e:
        raise CorruptPage(f"Text column is not valid {text_encoding.name}: {e}") from e
