"""Request-scoped values and cancellation shared across the language server."""

from __future__ import annotations

import logging
import signal
import threading
import weakref
from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class _ContextKey:
    name: str

    def __str__(self) -> str:
        return self.name


_DOCUMENT_STORAGE = _ContextKey("document storage")
_DIAGNOSTICS_NOTIFIER = _ContextKey("diagnostics notifier")
_LANGUAGE_SERVER_VERSION = _ContextKey("language server version")
_CLIENT_CALLER = _ContextKey("client caller")
_TELEMETRY = _ContextKey("telemetry")


class MissingContextError(LookupError):
    """A value the caller relies on was never stored in the context."""

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"missing context: {key}")


class Context:
    """An immutable chain of values that can be cancelled as a tree."""

    def __init__(self, parent: Context | None = None) -> None:
        self._parent = parent
        self._values: dict[Any, Any] = {}
        self._done = threading.Event()
        self._children: weakref.WeakSet[Context] = weakref.WeakSet()
        self._lock = threading.Lock()
        if parent is not None:
            parent._adopt(self)

    def _adopt(self, child: Context) -> None:
        with self._lock:
            if not self._done.is_set():
                self._children.add(child)
                return
        child.cancel()

    def with_value(self, key: Any, value: Any) -> Context:
        """Return a child context that also carries the given value."""
        child = Context(self)
        child._values[key] = value
        return child

    def value(self, key: Any) -> Any:
        """Return the nearest value stored under the key, or None."""
        ctx: Context | None = self
        while ctx is not None:
            if key in ctx._values:
                return ctx._values[key]
            ctx = ctx._parent
        return None

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        with self._lock:
            if self._done.is_set():
                return
            self._done.set()
            children = list(self._children)
            self._children = weakref.WeakSet()
        for child in children:
            child.cancel()

    @property
    def cancelled(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or the timeout passes; tell which happened."""
        return self._done.wait(timeout)


def _require(ctx: Context, key: _ContextKey) -> Any:
    value = ctx.value(key)
    if value is None:
        raise MissingContextError(key)
    return value


def with_document_storage(ctx: Context, storage: Any) -> Context:
    return ctx.with_value(_DOCUMENT_STORAGE, storage)


def document_storage(ctx: Context) -> Any:
    return _require(ctx, _DOCUMENT_STORAGE)


def with_diagnostics_notifier(ctx: Context, notifier: Any) -> Context:
    return ctx.with_value(_DIAGNOSTICS_NOTIFIER, notifier)


def diagnostics_notifier(ctx: Context) -> Any:
    return _require(ctx, _DIAGNOSTICS_NOTIFIER)


def with_language_server_version(ctx: Context, version: str) -> Context:
    return ctx.with_value(_LANGUAGE_SERVER_VERSION, version)


def language_server_version(ctx: Context) -> str | None:
    """Return the stored server version, or None when there is none."""
    version = ctx.value(_LANGUAGE_SERVER_VERSION)
    return version if isinstance(version, str) else None


def with_client_caller(ctx: Context, caller: Any) -> Context:
    return ctx.with_value(_CLIENT_CALLER, caller)


def client_caller(ctx: Context) -> Any:
    return _require(ctx, _CLIENT_CALLER)


def with_client_notifier(ctx: Context, notifier: Any) -> Context:
    # The notifier shares its slot with the caller.
    return ctx.with_value(_CLIENT_CALLER, notifier)


def client_notifier(ctx: Context) -> Any:
    return _require(ctx, _CLIENT_CALLER)


def with_telemetry(ctx: Context, sender: Any) -> Context:
    return ctx.with_value(_TELEMETRY, sender)


def telemetry(ctx: Context) -> Any:
    return _require(ctx, _TELEMETRY)


def with_signal_cancel(
    ctx: Context, logger: logging.Logger, *args: signal.Signals
) -> tuple[Context, Callable[[], None]]:
    """Derive a context cancelled when any of the given signals arrives.

    Returns the context and a function that restores the previous signal
    handlers and cancels the context.
    """
    child = Context(ctx)

    def handle(signum: int, _frame: Any) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        logger.info("Cancellation signal (%s) received", name)
        child.cancel()

    previous = {sig: signal.signal(sig, handle) for sig in args}

    def stop() -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        previous.clear()
        child.cancel()

    return child, stop