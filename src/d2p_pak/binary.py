"""
Fixed-width integer and string primitives for the pak format.

Every multi-byte value in a pak segment uses the same byte order, set once by
BYTE_ORDER. Strings are a u16 byte length followed by that many UTF-8 bytes.
"""
from __future__ import annotations

import struct
from typing import BinaryIO

from .errors import InvalidEncoding, IoFailure, TruncatedStream

BYTE_ORDER = ">"

_U8 = struct.Struct(BYTE_ORDER + "B")
_U16 = struct.Struct(BYTE_ORDER + "H")
_I32 = struct.Struct(BYTE_ORDER + "i")
_U32 = struct.Struct(BYTE_ORDER + "I")

MAX_STRING_LENGTH = 0xFFFF


def read_exact(stream: BinaryIO, size: int) -> bytes:
    """Read exactly `size` bytes or raise TruncatedStream."""
    try:
        data = stream.read(size)
    except (OSError, ValueError) as exc:
        raise IoFailure(f"read of {size} bytes failed: {exc}") from exc
    if data is None or len(data) != size:
        got = 0 if data is None else len(data)
        raise TruncatedStream(f"expected {size} bytes, got {got}")
    return data


def seek(stream: BinaryIO, position: int, whence: int = 0) -> int:
    try:
        return stream.seek(position, whence)
    except (OSError, ValueError) as exc:
        raise IoFailure(f"seek to {position} (whence={whence}) failed: {exc}") from exc


def read_u8(stream: BinaryIO) -> int:
    return _U8.unpack(read_exact(stream, _U8.size))[0]


def read_u16(stream: BinaryIO) -> int:
    return _U16.unpack(read_exact(stream, _U16.size))[0]


def read_i32(stream: BinaryIO) -> int:
    return _I32.unpack(read_exact(stream, _I32.size))[0]


def read_u32(stream: BinaryIO) -> int:
    return _U32.unpack(read_exact(stream, _U32.size))[0]


def read_string(stream: BinaryIO) -> str:
    length = read_u16(stream)
    raw = read_exact(stream, length)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidEncoding(f"string of {length} bytes is not valid UTF-8: {exc}") from exc


def _write(stream: BinaryIO, data: bytes) -> None:
    try:
        stream.write(data)
    except (OSError, ValueError) as exc:
        raise IoFailure(f"write of {len(data)} bytes failed: {exc}") from exc


def write_u8(stream: BinaryIO, value: int) -> None:
    _write(stream, _U8.pack(value))


def write_u16(stream: BinaryIO, value: int) -> None:
    _write(stream, _U16.pack(value))


def write_i32(stream: BinaryIO, value: int) -> None:
    _write(stream, _I32.pack(value))


def write_u32(stream: BinaryIO, value: int) -> None:
    _write(stream, _U32.pack(value))


def write_string(stream: BinaryIO, value: str) -> None:
    encoded = value.encode("utf-8")
    if len(encoded) > MAX_STRING_LENGTH:
        raise ValueError(f"string is {len(encoded)} bytes long, limit is {MAX_STRING_LENGTH}")
    write_u16(stream, len(encoded))
    _write(stream, encoded)


def write_bytes(stream: BinaryIO, data: bytes) -> None:
    _write(stream, data)
