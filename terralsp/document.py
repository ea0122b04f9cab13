"""Documents held in memory and their metadata."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from typing import Callable, Protocol
from urllib.parse import quote

from terralsp.position import Line, Range, make_source_lines


def path_to_uri(path: str) -> str:
    """Return the file URI for a filesystem path."""
    slashed = path.replace("\\", "/")
    if len(slashed) >= 2 and slashed[1] == ":" and slashed[0].isalpha():
        slashed = "/" + slashed
    return "file://" + quote(slashed, safe="/$&+,:;=@")


class DocumentHandler(Protocol):
    """Anything that identifies a document."""

    @property
    def uri(self) -> str:
        """The document URI."""

    @property
    def full_path(self) -> str:
        """The document path on disk."""

    @property
    def dir(self) -> str:
        """The directory holding the document."""

    @property
    def filename(self) -> str:
        """The base name of the document."""


class VersionedDocumentHandler(DocumentHandler, Protocol):
    """A document handler that carries the client's version number."""

    @property
    def version(self) -> int:
        """The document version."""


@dataclass(frozen=True)
class DocumentChange:
    """A text edit; without a range it replaces the whole content."""

    text: str
    range: Range | None = None


class DocumentMetadata:
    """Open state, version, language and lines of a document."""

    def __init__(self, handler: DocumentHandler, language_id: str, content: bytes) -> None:
        self.handler = handler
        self.language_id = language_id
        self._lock = threading.Lock()
        self._is_open = False
        self._version = 0
        self._lines = make_source_lines(handler.filename, content)

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def version(self) -> int:
        return self._version

    @property
    def lines(self) -> list[Line]:
        return self._lines

    def set_open(self, is_open: bool) -> None:
        with self._lock:
            self._is_open = is_open

    def set_version(self, version: int) -> None:
        with self._lock:
            self._version = version

    def update_lines(self, content: bytes) -> None:
        with self._lock:
            self._lines = make_source_lines(self.handler.filename, content)


class Document:
    """A document whose text is read from backing storage on demand."""

    def __init__(self, metadata: DocumentMetadata, read_file: Callable[[str], bytes]) -> None:
        self.metadata = metadata
        self._read_file = read_file

    def text(self) -> bytes:
        """Return the current content of the document."""
        return self._read_file(self.full_path)

    @property
    def full_path(self) -> str:
        return self.metadata.handler.full_path

    @property
    def dir(self) -> str:
        return os.path.dirname(self.full_path) or "."

    @property
    def filename(self) -> str:
        return os.path.basename(os.path.normpath(self.full_path))

    @property
    def uri(self) -> str:
        return path_to_uri(self.full_path)

    @property
    def lines(self) -> list[Line]:
        return self.metadata.lines

    @property
    def version(self) -> int:
        return self.metadata.version

    @property
    def language_id(self) -> str:
        return self.metadata.language_id

    @property
    def is_open(self) -> bool:
        return self.metadata.is_open

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        if (self.uri, self.is_open, self.version) != (other.uri, other.is_open, other.version):
            return False
        try:
            return self.text() == other.text()
        except OSError:
            return False

    __hash__ = None  # type: ignore[assignment]