from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO, Dict, Mapping, Optional, Union

from . import binary
from .errors import IoFailure
from .logging_utils import get_logger
from .raw import LINK_KEY, Chunk, Info, Property, write_header

logger = get_logger(__name__)

DATA_OFFSET = 2  # data region follows the two header bytes


def write_segment(
    stream: BinaryIO,
    files: Mapping[str, bytes],
    properties: Optional[Mapping[str, str]] = None,
) -> Info:
    """Serialize one segment: header, file data, chunk table, property table, footer."""
    write_header(stream)

    chunks = []
    position = 0
    for name, data in files.items():
        binary.write_bytes(stream, data)
        chunks.append(Chunk(name, position, len(data)))
        position += len(data)

    chunks_offset = DATA_OFFSET + position
    binary.seek(stream, chunks_offset)
    for chunk in chunks:
        chunk.write(stream)

    properties_offset = stream.tell()
    props = [Property(key, value) for key, value in (properties or {}).items()]
    for prop in props:
        prop.write(stream)

    info = Info(
        offset=DATA_OFFSET,
        size=position,
        chunks_offset=chunks_offset,
        chunks_count=len(chunks),
        properties_offset=properties_offset,
        properties_count=len(props),
    )
    info.write(stream)
    return info


def pack_directory(
    data_in_dir: Union[str, os.PathLike],
    pak_out: Union[str, os.PathLike],
    link: Optional[str] = None,
) -> Info:
    """Pack every file under `data_in_dir` into a single segment at `pak_out`.

    With `link`, the segment gets a "link" property naming the next segment.
    """
    data_in_path = Path(data_in_dir)
    files: Dict[str, bytes] = {}
    total = 0
    for root, dirs, names in os.walk(data_in_path):
        dirs.sort()
        for name in sorted(names):
            full_path = Path(root) / name
            try:
                data = full_path.read_bytes()
            except OSError as exc:
                raise IoFailure(f"cannot read '{full_path}': {exc}") from exc
            files[full_path.relative_to(data_in_path).as_posix()] = data
            total += len(data)

    logger.info("Total files = %d", len(files))
    logger.info("Total filesize = %d", total)

    properties = {LINK_KEY: link} if link else None
    try:
        with open(pak_out, "wb") as out:
            logger.info("Writing out %s", pak_out)
            return write_segment(out, files, properties)
    except OSError as exc:
        raise IoFailure(f"cannot write '{pak_out}': {exc}") from exc
