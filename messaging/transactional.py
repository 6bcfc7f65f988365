"""A handler that runs its inner handler with a transactional commit writer."""

from __future__ import annotations

import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable, Optional

from messaging.cancellation import Context, ContextCancelledError
from messaging.contracts import CommitWriter, Connection, Connector, Handler, Writer

_LOGGER = logging.getLogger("messaging.transactional")


@dataclass
class State:
    """What a handler factory receives: the stored transaction and the writer."""

    tx: Any = None
    writer: Optional[Writer] = None


class TransactionalContext(Context):
    """A child context that carries the connection, writer and transaction."""

    def __init__(self, ctx: Context, connection: Connection) -> None:
        super().__init__(ctx)
        self.connection = connection
        self.writer: Optional[CommitWriter] = None
        self.tx: Any = None

    def store(self, tx: Any) -> None:
        """Remember a transaction opened while creating the writer."""
        self.tx = tx

    def state(self) -> State:
        return State(tx=self.tx, writer=self.writer)

    def close(self) -> None:
        """Close the writer, ignoring failures, then the connection."""
        if self.writer is not None:
            with suppress(Exception):
                self.writer.close()
        self.connection.close()


def _log_level(err: BaseException) -> int:
    if isinstance(err, (ContextCancelledError, TimeoutError)):
        return logging.INFO
    return logging.WARNING


class TransactionalHandler(Handler):
    """Opens a connection and commit writer per batch and commits on success.

    ``factory`` builds the inner handler from the State. Any failure rolls the
    writer back and is raised again; the writer and connection are always
    closed.
    """

    def __init__(
        self,
        connector: Connector,
        factory: Callable[[State], Handler],
        logger: Optional[logging.Logger] = None,
        monitor: Any = None,
    ) -> None:
        self._connector = connector
        self._factory = factory
        self._logger = logger or _LOGGER
        self._monitor = monitor

    def handle(self, ctx: Context, *messages: Any) -> None:
        if ctx is None:
            raise ValueError("context must not be None")

        try:
            connection = self._connector.connect(ctx)
        except Exception as err:
            self._report_begin_failure(err)
            raise

        tx_ctx = TransactionalContext(ctx, connection)
        try:
            self._run(ctx, tx_ctx, messages)
        except BaseException:
            if tx_ctx.writer is not None:
                rollback_error = self._rollback(tx_ctx.writer)
                if self._monitor is not None:
                    self._monitor.transaction_rolled_back(rollback_error)
            raise
        finally:
            with suppress(Exception):
                tx_ctx.close()

    def _run(self, ctx: Context, tx_ctx: TransactionalContext, messages: tuple) -> None:
        try:
            writer = tx_ctx.connection.commit_writer(tx_ctx)
        except Exception as err:
            self._report_begin_failure(err)
            raise

        if self._monitor is not None:
            self._monitor.transaction_started(None)
        tx_ctx.writer = writer
        self._factory(tx_ctx.state()).handle(ctx, *messages)

        try:
            writer.commit()
        except Exception as err:
            self._logger.log(_log_level(err), "Unable to commit transaction [%s].", err)
            if self._monitor is not None:
                self._monitor.transaction_committed(err)
            raise

        if self._monitor is not None:
            self._monitor.transaction_committed(None)

    def _report_begin_failure(self, err: Exception) -> None:
        self._logger.warning("Unable to begin transaction [%s].", err)
        if self._monitor is not None:
            self._monitor.transaction_started(err)

    @staticmethod
    def _rollback(writer: CommitWriter) -> Optional[Exception]:
        try:
            writer.rollback()
        except Exception as err:
            return err
        return None