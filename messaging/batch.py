"""A writer that writes each batch of dispatches in its own committed transaction."""

from __future__ import annotations

from contextlib import suppress
from typing import Optional

from messaging.cancellation import Context
from messaging.contracts import CommitWriter, Connection, Connector, Dispatch, Writer


def _close_quietly(resource) -> None:
    if resource is not None:
        with suppress(Exception):
            resource.close()


class BatchWriter(Writer):
    """Writes and commits each batch through a lazily opened commit writer.

    With ``reuse_writer`` false the connection and writer are discarded after
    every batch, which suits writers whose transaction ends with one commit.
    Any failure discards them as well, so the next batch reconnects.
    """

    def __init__(self, connector: Connector, reuse_writer: bool = True) -> None:
        self._connector = connector
        self._reuse_writer = reuse_writer
        self._connection: Optional[Connection] = None
        self._writer: Optional[CommitWriter] = None

    def write(self, ctx: Context, *dispatches: Dispatch) -> int:
        if not dispatches:
            return 0
        ctx.check()

        try:
            count = self._write(ctx, dispatches)
        except BaseException:
            self._close_handles()
            raise

        if not self._reuse_writer:
            self._close_handles()
        return count

    def _write(self, ctx: Context, dispatches: tuple[Dispatch, ...]) -> int:
        writer = self._ensure_writer(ctx)
        writer.write(ctx, *dispatches)
        writer.commit()
        return len(dispatches)

    def _ensure_writer(self, ctx: Context) -> CommitWriter:
        if self._writer is None:
            self._connection = self._connector.connect(ctx)
            self._writer = self._connection.commit_writer(ctx)
        return self._writer

    def close(self) -> None:
        self._close_handles()

    def _close_handles(self) -> None:
        _close_quietly(self._writer)
        self._writer = None
        _close_quietly(self._connection)
        self._connection = None


def new_writer(connector: Connector, reuse_writer: bool = True) -> BatchWriter:
    """Create a BatchWriter over ``connector``."""
    return BatchWriter(connector, reuse_writer=reuse_writer)