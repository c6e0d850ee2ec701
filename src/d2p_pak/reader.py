"""
Merged, read-only view over every segment of a pak archive.

MergeReader follows the "link" properties from the first segment, registers
the chunks and properties of each segment, and keeps one open stream per
segment. Chunk data is only read when MergedChunk.data() is called.
"""
from __future__ import annotations

import fnmatch
import os
import threading
from collections import deque
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import BinaryIO, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from . import binary
from .errors import FormatError, IoFailure, NotFound, UnsafePath
from .links import resolve_link
from .logging_utils import get_logger
from .raw import load_segment

logger = get_logger(__name__)

PathLike = Union[str, os.PathLike]
StreamFactory = Callable[[Path], BinaryIO]


def open_file(path: Path) -> BinaryIO:
    return open(path, "rb")


class SegmentHandle:
    """One open segment stream, shared by every chunk stored in that segment."""

    def __init__(self, path: Path, stream: BinaryIO) -> None:
        self.path = path
        self.stream = stream
        self.lock = threading.Lock()

    def read_at(self, offset: int, size: int) -> bytes:
        with self.lock:
            binary.seek(self.stream, offset)
            return binary.read_exact(self.stream, size)

    def close(self) -> None:
        with self.lock:
            self.stream.close()

    def __repr__(self) -> str:
        return f"SegmentHandle({str(self.path)!r})"


class MergedChunk:
    __slots__ = ("_offset", "_size", "_segment")

    def __init__(self, offset: int, size: int, segment: SegmentHandle) -> None:
        self._offset = offset
        self._size = size
        self._segment = segment

    @property
    def offset(self) -> int:
        """Absolute position of the data in its segment."""
        return self._offset

    @property
    def size(self) -> int:
        return self._size

    @property
    def segment_path(self) -> Path:
        return self._segment.path

    def data(self) -> bytes:
        """Read the chunk bytes from its segment. Nothing is cached.

        The segment stream is shared with the MergeReader that created this
        chunk. Once that reader is closed (`close()` or leaving its `with`
        block) the stream is closed too and this raises IoFailure, even though
        the chunk itself is still alive.
        """
        if self._size < 0 or self._offset < 0:
            raise FormatError(
                f"chunk at offset {self._offset} with size {self._size} in '{self._segment.path}' is invalid"
            )
        return self._segment.read_at(self._offset, self._size)

    def __repr__(self) -> str:
        return f"MergedChunk(offset={self._offset}, size={self._size}, segment={str(self._segment.path)!r})"


class MergeReader:
    """Unified chunk and property namespace of a (possibly split) pak archive."""

    def __init__(self) -> None:
        self._chunks: Dict[str, MergedChunk] = {}
        self._properties: Dict[str, str] = {}
        self._segments: List[SegmentHandle] = []

    @classmethod
    def open(cls, initial_path: PathLike) -> "MergeReader":
        return cls.merge(initial_path, open_file)

    @classmethod
    def merge(cls, initial_path: PathLike, make_stream: StreamFactory) -> "MergeReader":
        """Load the segment at `initial_path` and every segment linked from it.

        `make_stream` opens a path into a readable, seekable binary stream. The
        first error aborts the merge; streams opened so far are closed.
        """
        initial = Path(initial_path)
        merged = cls()
        pending = deque([initial])
        seen = {initial}
        try:
            while pending:
                path = pending.popleft()
                merged._load(initial, path, make_stream, pending, seen)
        except Exception:
            merged.close()
            raise
        logger.info(
            "Merged %d segment(s) from %s: %d chunks, %d properties",
            len(merged._segments),
            initial,
            len(merged._chunks),
            len(merged._properties),
        )
        return merged

    def _load(self, initial: Path, path: Path, make_stream: StreamFactory, pending: deque, seen: set) -> None:
        logger.debug("Loading segment %s", path)
        try:
            stream = make_stream(path)
        except IoFailure:
            raise
        except OSError as exc:
            raise IoFailure(f"cannot open pak segment '{path}': {exc}") from exc
        try:
            segment = load_segment(stream)
        except Exception:
            stream.close()
            raise
        handle = SegmentHandle(path, stream)
        self._segments.append(handle)

        base = segment.info.offset
        for name, chunk in segment.chunks.items():
            self._chunks[name] = MergedChunk(base + chunk.offset, chunk.size, handle)

        for key, prop in segment.properties.items():
            if prop.is_link:
                target = resolve_link(initial, prop.value)
                if target in seen:
                    logger.warning("Segment %s links back to %s; link not followed", path, target)
                else:
                    seen.add(target)
                    pending.append(target)
            self._properties[key] = prop.value

    def read_file(self, full_file_name: str) -> bytes:
        chunk = self._chunks.get(full_file_name)
        if chunk is None:
            raise NotFound(full_file_name)
        return chunk.data()

    def iterate(self) -> Iterator[Tuple[str, MergedChunk]]:
        return iter(self._chunks.items())

    def names(self) -> List[str]:
        return list(self._chunks)

    def get(self, full_file_name: str) -> Optional[MergedChunk]:
        return self._chunks.get(full_file_name)

    @property
    def properties(self) -> Mapping[str, str]:
        return MappingProxyType(self._properties)

    @property
    def segments(self) -> List[Path]:
        """Paths of the loaded segments, in load order."""
        return [handle.path for handle in self._segments]

    def extract(self, dest: PathLike, patterns: Optional[Iterable[str]] = None) -> List[Path]:
        """Write chunks under `dest`, recreating their logical paths.

        With `patterns`, only names matching one of the globs are written.
        """
        destination = Path(dest)
        root = destination.resolve()
        globs = [p.lower() for p in patterns] if patterns else None
        written: List[Path] = []
        for full_file_name, chunk in self.iterate():
            if globs and not any(fnmatch.fnmatch(full_file_name.lower(), g) for g in globs):
                continue
            output = destination.joinpath(*PurePosixPath(full_file_name.replace("\\", "/")).parts)
            if root not in output.resolve().parents:
                raise UnsafePath(f"'{full_file_name}' would be written outside of '{destination}'")
            output.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Unpacking: %s", output)
            data = chunk.data()
            try:
                output.write_bytes(data)
            except OSError as exc:
                raise IoFailure(f"cannot write '{output}': {exc}") from exc
            written.append(output)
        return written

    def close(self) -> None:
        """Close every segment stream. Chunks can no longer be read afterwards."""
        for handle in self._segments:
            handle.close()

    def __enter__(self) -> "MergeReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._chunks)

    def __contains__(self, full_file_name: object) -> bool:
        return full_file_name in self._chunks

    def __iter__(self) -> Iterator[str]:
        return iter(self._chunks)


def unpack_one_to_memory(pak_pathname: PathLike, filename_glob: str) -> bytes:
    """Merge the archive at `pak_pathname` and return the first file matching `filename_glob`."""
    with MergeReader.open(pak_pathname) as reader:
        if filename_glob in reader:
            return reader.read_file(filename_glob)
        pattern = filename_glob.lower()
        for full_file_name, chunk in reader.iterate():
            if fnmatch.fnmatch(full_file_name.lower(), pattern):
                logger.info("Found file in archive: %s", full_file_name)
                return chunk.data()
    raise NotFound(filename_glob)
