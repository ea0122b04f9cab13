"""Errors raised while managing in-memory documents."""

from __future__ import annotations

from typing import Any


class _HandlerError(Exception):
    """An error about the document a handler points to."""

    _message = "document error"

    def __init__(self, handler: Any) -> None:
        self.handler = handler
        super().__init__(f"{self._message}: {handler.uri}")


class DocumentNotOpenError(_HandlerError):
    """The document is known but not open in the client."""

    _message = "document is not open"


class MetadataAlreadyExistsError(_HandlerError):
    """Metadata for the document has already been recorded."""

    _message = "document metadata already exists"


class UnknownDocumentError(_HandlerError, LookupError):
    """No document is known under the handler's URI."""

    _message = "unknown document"


class InvalidPosError(ValueError):
    """A position lies outside the document."""

    def __init__(self, pos: Any) -> None:
        self.pos = pos
        super().__init__(f"invalid position: {pos}")