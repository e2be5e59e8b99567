from sqlite_reader.consts import (
    CONTINUATION_BIT,
    LAST_SEVEN_BITS_MASK,
    MAX_VARINT_SIZE,
)
from sqlite_reader.exceptions import TruncatedInput
from typing import BinaryIO, Tuple

UINT64_MASK = 0xFFFF_FFFF_FFFF_FFFF
SIGN_BIT = 1 << 63


def page_start(page_number: int, page_size: int) -> int:
    # Pages are numbered from 1
    return (page_number - 1) * page_size


def read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise TruncatedInput(f"Expected {size} bytes but only {len(data)} were available")
    return data


def read_int(stream: BinaryIO, size: int, signed: bool = False) -> int:
    """Reads a big-endian integer of ``size`` bytes."""
    return int.from_bytes(read_exact(stream, size), "big", signed=signed)


def read_varint(stream: BinaryIO) -> Tuple[int, int]:
    """
    Reads a varint as described in https://www.sqlite.org/fileformat.html#varint

    Returns the decoded value and the number of bytes it used. The first 8 bytes
    contribute their 7 least significant bits, with the most significant bit
    flagging that another byte follows. A 9th byte contributes all of its 8 bits.
    """
    value = 0
    for byte_count in range(1, MAX_VARINT_SIZE + 1):
        raw = stream.read(1)
        if not raw:
            raise TruncatedInput(f"Varint ended after {byte_count - 1} bytes")

        byte = raw[0]
        if byte_count == MAX_VARINT_SIZE:
            value = (value << 8) | byte
            break

        value = (value << 7) | (byte & LAST_SEVEN_BITS_MASK)
        if not byte & CONTINUATION_BIT:
            break

    # varints are 64 bit two's complement integers
    if value & SIGN_BIT:
        value -= 1 << 64

    return value, byte_count


def encode_varint(value: int) -> bytes:
    value &= UINT64_MASK

    # Anything using the top 8 bits needs the 9 byte form, whose last byte is a full byte
    if value & (0xFF << 56):
        encoded = bytearray(MAX_VARINT_SIZE)
        encoded[8] = value & 0xFF
        value >>= 8
        for i in range(7, -1, -1):
            encoded[i] = (value & LAST_SEVEN_BITS_MASK) | CONTINUATION_BIT
            value >>= 7
        return bytes(encoded)

    groups = [value & LAST_SEVEN_BITS_MASK]
    value >>= 7
    while value:
        groups.append((value & LAST_SEVEN_BITS_MASK) | CONTINUATION_BIT)
        value >>= 7

    return bytes(reversed(groups))
