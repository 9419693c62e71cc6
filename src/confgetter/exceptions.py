"""confgetter exception hierarchy.

Provides a structured exception tree so catch blocks can be specific
and callers can distinguish between transport failures and failures of
the post-download extraction step.
"""

from __future__ import annotations

from pathlib import Path


class GetterError(Exception):
    """Base for all confgetter exceptions."""


class DownloadError(GetterError):
    """Transport-level fetch failures."""


class BadResponseError(DownloadError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, url: str = "") -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(f"bad response code: {status_code}")


class NoGetterError(DownloadError):
    """No getter is registered for a URL scheme."""

    def __init__(self, scheme: str, message: str = "") -> None:
        self.scheme = scheme
        super().__init__(message or f"no getter available for scheme: {scheme}")


class ExtractionError(GetterError):
    """Post-download structured extraction failures."""


class UnsupportedFormatError(ExtractionError):
    def __init__(self, format: str) -> None:
        self.format = format
        super().__init__(f"unsupported format {format}, yet")


class ExtractionParseError(ExtractionError):
    """Downloaded content or the path query could not be parsed."""


class DocumentParseError(ExtractionParseError):
    def __init__(self, path: str | Path, cause: Exception) -> None:
        self.path = str(path)
        super().__init__(f"cannot unmarshal data from file({self.path}): {cause}")


class PathQueryError(ExtractionParseError):
    def __init__(self, xpath: str, cause: Exception) -> None:
        self.xpath = xpath
        super().__init__(f"cannot create path: {cause}")


class ResultArityError(ExtractionError):
    """A single-value query matched more than one node."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f"unexpected result: more elements than 1: {count}")


class SerializationError(ExtractionError):
    """The extracted value could not be encoded back to text."""


class DestinationIOError(ExtractionError):
    """Reading or rewriting the destination file failed."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = str(path)
        super().__init__(message)
