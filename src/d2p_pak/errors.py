class PakError(Exception):
    """Base class for every error raised while reading or writing a pak archive."""


class FormatError(PakError, ValueError):
    """The bytes do not follow the pak layout."""


class CorruptHeader(FormatError):
    pass


class TruncatedStream(FormatError, EOFError):
    """A read or a table ran past the end of the available bytes."""


class InvalidEncoding(FormatError):
    pass


class IoFailure(PakError, OSError):
    """The underlying file or stream failed."""


class NotFound(PakError, LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"'{name}' is not in the archive")
        self.name = name


class UnsafePath(PakError):
    """A chunk name would be written outside the extraction directory."""
