"""Cooperative cancellation shared by readers, writers and handlers."""

from __future__ import annotations

import threading
import weakref
from typing import Optional


class ContextCancelledError(Exception):
    """Raised when work is attempted on a context that has been cancelled."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class Context:
    """A cancellation signal that propagates from a parent to its children.

    Cancelling a context cancels every context derived from it; cancelling a
    child leaves its parent untouched.
    """

    def __init__(self, parent: Optional["Context"] = None) -> None:
        self.parent = parent
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: "weakref.WeakSet[Context]" = weakref.WeakSet()
        if parent is not None:
            parent._adopt(self)

    def _adopt(self, child: "Context") -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.add(child)
                return
        child.cancel()

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            children = list(self._children)
            self._children.clear()
        for child in children:
            child.cancel()

    def done(self) -> bool:
        """Return True once the context has been cancelled."""
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or until ``timeout`` seconds pass; return done()."""
        return self._event.wait(timeout)

    def check(self) -> None:
        """Raise ContextCancelledError if the context has been cancelled."""
        if self.done():
            raise ContextCancelledError()

    def __enter__(self) -> "Context":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()


def background() -> Context:
    """Return a new root context with no parent."""
    return Context()