"""
Raw records of a pak segment.

Segment layout:

    Header      from start 0     u8 = 2, u8 = 1
    Info        from end -24     offset, size, chunks_offset, chunks_count,
                                 properties_offset, properties_count
    Properties  from properties_offset, properties_count times
                                 key (string), value (string)
    Chunks      from chunks_offset, chunks_count times
                                 full_file_name (string), offset (i32), size (i32)

The data of a chunk starts at Info.offset + Chunk.offset. A property whose key
is "link" names the next segment of the archive.
"""
from __future__ import annotations

import io
import os
from dataclasses import dataclass
from typing import BinaryIO, Dict, NamedTuple

from . import binary
from .errors import CorruptHeader, IoFailure, TruncatedStream
from .logging_utils import get_logger

logger = get_logger(__name__)

HEADER = (2, 1)
INFO_SIZE = 24
LINK_KEY = "link"


def read_header(stream: BinaryIO) -> None:
    """Check the two magic bytes at the current position."""
    try:
        found = (binary.read_u8(stream), binary.read_u8(stream))
    except TruncatedStream as exc:
        raise CorruptHeader("corrupted pak header: stream ends before the magic bytes") from exc
    if found != HEADER:
        raise CorruptHeader(f"corrupted pak header: expected {HEADER}, found {found}")


def write_header(stream: BinaryIO) -> None:
    for value in HEADER:
        binary.write_u8(stream, value)


@dataclass
class Info:
    offset: int
    size: int
    chunks_offset: int
    chunks_count: int
    properties_offset: int
    properties_count: int

    @classmethod
    def read(cls, stream: BinaryIO) -> "Info":
        """Read the trailer located INFO_SIZE bytes before the end of `stream`."""
        length = binary.seek(stream, 0, os.SEEK_END)
        if length < INFO_SIZE:
            raise TruncatedStream(f"stream is {length} bytes long, the pak footer needs {INFO_SIZE}")
        binary.seek(stream, length - INFO_SIZE)
        return cls(
            offset=binary.read_u32(stream),
            size=binary.read_i32(stream),
            chunks_offset=binary.read_u32(stream),
            chunks_count=binary.read_i32(stream),
            properties_offset=binary.read_u32(stream),
            properties_count=binary.read_i32(stream),
        )

    def write(self, stream: BinaryIO) -> None:
        binary.write_u32(stream, self.offset)
        binary.write_i32(stream, self.size)
        binary.write_u32(stream, self.chunks_offset)
        binary.write_i32(stream, self.chunks_count)
        binary.write_u32(stream, self.properties_offset)
        binary.write_i32(stream, self.properties_count)


@dataclass
class Property:
    key: str
    value: str

    @classmethod
    def read(cls, stream: BinaryIO) -> "Property":
        key = binary.read_string(stream)
        value = binary.read_string(stream)
        return cls(key, value)

    def write(self, stream: BinaryIO) -> None:
        binary.write_string(stream, self.key)
        binary.write_string(stream, self.value)

    @property
    def is_link(self) -> bool:
        return self.key == LINK_KEY


@dataclass
class Chunk:
    full_file_name: str
    offset: int
    size: int

    @classmethod
    def read(cls, stream: BinaryIO) -> "Chunk":
        full_file_name = binary.read_string(stream)
        offset = binary.read_i32(stream)
        size = binary.read_i32(stream)
        return cls(full_file_name, offset, size)

    def write(self, stream: BinaryIO) -> None:
        binary.write_string(stream, self.full_file_name)
        binary.write_i32(stream, self.offset)
        binary.write_i32(stream, self.size)


class Segment(NamedTuple):
    info: Info
    chunks: Dict[str, Chunk]
    properties: Dict[str, Property]


def _table_window(stream: BinaryIO, info: Info, start: int) -> BinaryIO:
    """Return the bytes of the table starting at `start`, as a bounded stream.

    The window stops at the first structure that begins after `start`: the
    other table, the data region or the footer. Reading more records than the
    window holds raises TruncatedStream instead of decoding those structures.
    An empty table is not a boundary; its offset may point anywhere.
    """
    length = binary.seek(stream, 0, os.SEEK_END)
    footer_start = length - INFO_SIZE
    candidates = [info.offset, footer_start]
    if info.chunks_count > 0:
        candidates.append(info.chunks_offset)
    if info.properties_count > 0:
        candidates.append(info.properties_offset)
    boundaries = [b for b in candidates if b > start]
    end = min(boundaries) if boundaries else length
    binary.seek(stream, start)
    if end <= start:
        return io.BytesIO()
    try:
        data = stream.read(end - start)
    except (OSError, ValueError) as exc:
        raise IoFailure(f"read of table at {start} failed: {exc}") from exc
    return io.BytesIO(data or b"")


def read_properties(stream: BinaryIO, info: Info) -> Dict[str, Property]:
    properties: Dict[str, Property] = {}
    if info.properties_count <= 0:
        return properties
    window = _table_window(stream, info, info.properties_offset)
    for _ in range(info.properties_count):
        prop = Property.read(window)
        properties[prop.key] = prop
    return properties


def read_chunks(stream: BinaryIO, info: Info) -> Dict[str, Chunk]:
    chunks: Dict[str, Chunk] = {}
    if info.chunks_count <= 0:
        return chunks
    window = _table_window(stream, info, info.chunks_offset)
    for _ in range(info.chunks_count):
        chunk = Chunk.read(window)
        chunks[chunk.full_file_name] = chunk
    return chunks


def load_segment(stream: BinaryIO) -> Segment:
    """Parse one physical segment: header, footer, then both tables."""
    binary.seek(stream, 0)
    read_header(stream)
    info = Info.read(stream)
    chunks = read_chunks(stream, info)
    properties = read_properties(stream, info)
    logger.debug(
        "Segment parsed: data offset=%d, %d chunks, %d properties",
        info.offset,
        len(chunks),
        len(properties),
    )
    return Segment(info, chunks, properties)
