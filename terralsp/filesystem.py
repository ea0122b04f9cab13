"""A virtual filesystem shared by the language server and the parser.

Documents received from the client live in memory, can be edited through
diffs, and carry metadata such as their version and whether the client has
them open. Reads fall back to the real, read-only operating-system files
when a path is not held in memory.
"""

from __future__ import annotations

import errno
import io
import logging
import os
import stat as stat_module
import threading
from dataclasses import dataclass
from typing import BinaryIO, Iterable

from terralsp.document import (
    Document,
    DocumentChange,
    DocumentHandler,
    DocumentMetadata,
    VersionedDocumentHandler,
    path_to_uri,
)
from terralsp.errors import (
    DocumentNotOpenError,
    MetadataAlreadyExistsError,
    UnknownDocumentError,
)
from terralsp.position import byte_offset_for_pos, make_source_lines


@dataclass(frozen=True)
class DirEntry:
    """A file or directory name with its kind and size."""

    name: str
    is_dir: bool
    size: int = 0


def _not_found(name: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)


def _normalize(path: str) -> str:
    normalized = os.path.normpath(path) if path else "."
    return os.sep if normalized == "." else normalized


def _ancestors(path: str) -> Iterable[str]:
    current = path
    while True:
        parent = os.path.dirname(current)
        if not parent or parent == current:
            return
        yield parent
        current = parent


class _MemoryStore:
    """Files and directories kept entirely in memory."""

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}
        self._dirs: set[str] = set()
        self._lock = threading.RLock()

    def mkdir_all(self, path: str) -> None:
        path = _normalize(path)
        with self._lock:
            for candidate in (path, *_ancestors(path)):
                if candidate in self._files:
                    raise NotADirectoryError(
                        errno.ENOTDIR, os.strerror(errno.ENOTDIR), candidate
                    )
            self._dirs.add(path)
            self._dirs.update(_ancestors(path))

    def exists(self, path: str) -> bool:
        path = _normalize(path)
        with self._lock:
            return path in self._files or path in self._dirs

    def write(self, path: str, content: bytes) -> None:
        path = _normalize(path)
        with self._lock:
            if path in self._dirs and path not in self._files and path != os.sep:
                raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), path)
            self._files[path] = bytes(content)
            self._dirs.update(_ancestors(path))

    def read(self, path: str) -> bytes:
        key = _normalize(path)
        with self._lock:
            if key in self._files:
                return self._files[key]
            if key in self._dirs:
                raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), path)
        raise _not_found(path)

    def remove(self, path: str) -> None:
        key = _normalize(path)
        with self._lock:
            if key not in self._files:
                raise _not_found(path)
            del self._files[key]

    def stat(self, path: str) -> DirEntry:
        key = _normalize(path)
        with self._lock:
            if key in self._files:
                return DirEntry(os.path.basename(key) or key, False, len(self._files[key]))
            if key in self._dirs:
                return DirEntry(os.path.basename(key) or key, True, 0)
        raise _not_found(path)

    def list_dir(self, path: str) -> list[DirEntry]:
        key = _normalize(path)
        with self._lock:
            if key not in self._dirs:
                if key in self._files:
                    raise NotADirectoryError(
                        errno.ENOTDIR, os.strerror(errno.ENOTDIR), path
                    )
                raise _not_found(path)
            entries = {
                os.path.basename(name): DirEntry(os.path.basename(name), False, len(data))
                for name, data in self._files.items()
                if name != key and os.path.dirname(name) == key
            }
            for name in self._dirs:
                if name != key and os.path.dirname(name) == key:
                    entries[os.path.basename(name)] = DirEntry(os.path.basename(name), True, 0)
        return sorted(entries.values(), key=lambda entry: entry.name)


def _os_list_dir(path: str) -> list[DirEntry]:
    with os.scandir(path) as scanner:
        entries = [
            DirEntry(
                entry.name,
                entry.is_dir(),
                entry.stat(follow_symlinks=False).st_size,
            )
            for entry in scanner
        ]
    return sorted(entries, key=lambda entry: entry.name)


def _os_stat(path: str) -> DirEntry:
    result = os.stat(path)
    name = os.path.basename(os.path.normpath(path))
    return DirEntry(name, stat_module.S_ISDIR(result.st_mode), result.st_size)


class Filesystem:
    """Document storage in memory layered over the read-only OS filesystem."""

    def __init__(self) -> None:
        self._memory = _MemoryStore()
        self._metadata: dict[str, DocumentMetadata] = {}
        self._metadata_lock = threading.RLock()
        self.logger = logging.getLogger(__name__)

    def set_logger(self, logger: logging.Logger) -> None:
        self.logger = logger

    # Document storage

    def create_document(
        self, handler: DocumentHandler, language_id: str, text: bytes
    ) -> None:
        """Store a document in memory and record its metadata."""
        if not self._memory.exists(handler.dir):
            try:
                self._memory.mkdir_all(handler.dir)
            except OSError as err:
                raise OSError(f"failed to create parent dir: {err}") from err
        self._memory.write(handler.full_path, text)
        self._create_metadata(handler, language_id, text)

    def create_and_open_document(
        self, handler: DocumentHandler, language_id: str, text: bytes
    ) -> None:
        """Store a document and mark it as open."""
        self.create_document(handler, language_id, text)
        self._mark_open(handler)

    def change_document(
        self, handler: VersionedDocumentHandler, changes: Iterable[DocumentChange]
    ) -> None:
        """Apply edits, in order, to an open document."""
        changes = list(changes)
        if not changes:
            return
        if not self._is_open(handler):
            raise DocumentNotOpenError(handler)

        content = self._memory.read(handler.full_path)
        for change in changes:
            content = self._apply_change(content, change)
        self._memory.write(handler.full_path, content)
        self._update_metadata_lines(handler, content)

    @staticmethod
    def _apply_change(content: bytes, change: DocumentChange) -> bytes:
        text = change.text.encode("utf-8")
        if change.range is None:
            return text
        lines = make_source_lines("", content)
        start = byte_offset_for_pos(lines, change.range.start)
        end = byte_offset_for_pos(lines, change.range.end)
        return content[:start] + text + content[end:]

    def close_and_remove_document(self, handler: DocumentHandler) -> None:
        """Drop an open document from memory together with its metadata."""
        if not self._is_open(handler):
            raise DocumentNotOpenError(handler)
        self._memory.remove(handler.full_path)
        with self._metadata_lock:
            self._metadata.pop(handler.uri, None)

    def get_document(self, handler: DocumentHandler) -> Document:
        """Return the document known under the handler's URI."""
        with self._metadata_lock:
            metadata = self._metadata.get(handler.uri)
        if metadata is None:
            raise UnknownDocumentError(handler)
        return Document(metadata, self._memory.read)

    def has_open_files(self, dir_path: str) -> bool:
        """Tell whether any file directly inside the directory is open."""
        entries = self.read_dir(dir_path)
        with self._metadata_lock:
            for entry in entries:
                metadata = self._metadata.get(path_to_uri(os.path.join(dir_path, entry.name)))
                if metadata is not None and metadata.is_open:
                    return True
        return False

    # Metadata bookkeeping

    def _create_metadata(
        self, handler: DocumentHandler, language_id: str, text: bytes
    ) -> None:
        with self._metadata_lock:
            if handler.uri in self._metadata:
                raise MetadataAlreadyExistsError(handler)
            self._metadata[handler.uri] = DocumentMetadata(handler, language_id, text)

    def _mark_open(self, handler: DocumentHandler) -> None:
        with self._metadata_lock:
            metadata = self._metadata.get(handler.uri)
            if metadata is None:
                raise UnknownDocumentError(handler)
            metadata.set_open(True)

    def _is_open(self, handler: DocumentHandler) -> bool:
        with self._metadata_lock:
            metadata = self._metadata.get(handler.uri)
        if metadata is None:
            raise UnknownDocumentError(handler)
        return metadata.is_open

    def _update_metadata_lines(
        self, handler: VersionedDocumentHandler, content: bytes
    ) -> None:
        with self._metadata_lock:
            metadata = self._metadata.get(handler.uri)
            if metadata is None:
                raise UnknownDocumentError(handler)
            metadata.update_lines(content)
            metadata.set_version(handler.version)

    # Direct filesystem access

    def read_file(self, name: str) -> bytes:
        """Read a file from memory, or from disk when memory lacks it."""
        try:
            return self._memory.read(name)
        except FileNotFoundError:
            with open(name, "rb") as handle:
                return handle.read()

    def read_dir(self, name: str) -> list[DirEntry]:
        """List a directory, memory entries first, then disk entries not in memory."""
        try:
            memory_entries = self._memory.list_dir(name)
        except FileNotFoundError:
            memory_entries = []
        except OSError as err:
            raise OSError(f"memory FS: {err}") from err

        try:
            os_entries = _os_list_dir(name)
        except FileNotFoundError:
            os_entries = []
        except OSError as err:
            raise OSError(f"OS FS: {err}") from err

        known = {entry.name for entry in memory_entries}
        return memory_entries + [entry for entry in os_entries if entry.name not in known]

    def open(self, name: str) -> BinaryIO:
        """Open a file for reading, preferring the in-memory copy."""
        try:
            return io.BytesIO(self._memory.read(name))
        except FileNotFoundError:
            return open(name, "rb")

    def stat(self, name: str) -> DirEntry:
        """Describe a file or directory, preferring the in-memory copy."""
        try:
            return self._memory.stat(name)
        except FileNotFoundError:
            return _os_stat(name)