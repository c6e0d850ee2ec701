from .errors import (
    CorruptHeader,
    FormatError,
    InvalidEncoding,
    IoFailure,
    NotFound,
    PakError,
    TruncatedStream,
    UnsafePath,
)
from .links import resolve_link
from .raw import Chunk, Info, Property, Segment, load_segment
from .reader import MergedChunk, MergeReader, unpack_one_to_memory
from .writer import pack_directory, write_segment

__version__ = "0.1.0"
