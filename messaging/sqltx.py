"""A handler that runs its inner handler inside a database transaction."""

from __future__ import annotations

import enum
import logging
from contextlib import suppress
from typing import Any, Callable, Optional, Protocol

from messaging.cancellation import Context, ContextCancelledError
from messaging.contracts import Handler

_LOGGER = logging.getLogger("messaging.sqltx")


class IsolationLevel(enum.IntEnum):
    """Transaction isolation levels."""

    DEFAULT = 0
    READ_UNCOMMITTED = 1
    READ_COMMITTED = 2
    WRITE_COMMITTED = 3
    REPEATABLE_READ = 4
    SNAPSHOT = 5
    SERIALIZABLE = 6
    LINEARIZABLE = 7


class Transaction(Protocol):
    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class TransactionSource(Protocol):
    def begin(
        self, ctx: Context, isolation_level: IsolationLevel, read_only: bool
    ) -> Transaction: ...


def _log_level(err: BaseException) -> int:
    if isinstance(err, (ContextCancelledError, TimeoutError)):
        return logging.INFO
    return logging.WARNING


def _rollback_quietly(tx: Transaction) -> None:
    with suppress(Exception):
        tx.rollback()


class SqlTransactionHandler(Handler):
    """Begins a transaction, hands it to ``callback`` for a handler, then commits.

    ``database.begin(ctx, isolation_level, read_only)`` opens the transaction.
    If the inner handler or the commit fails the transaction is rolled back
    and the error is raised again.
    """

    def __init__(
        self,
        database: TransactionSource,
        callback: Callable[[Transaction], Handler],
        read_only: bool = False,
        isolation_level: IsolationLevel = IsolationLevel.READ_COMMITTED,
        logger: Optional[logging.Logger] = None,
        monitor: Any = None,
    ) -> None:
        self._database = database
        self._callback = callback
        self._read_only = read_only
        self._isolation_level = IsolationLevel(isolation_level)
        self._logger = logger or _LOGGER
        self._monitor = monitor

    def handle(self, ctx: Context, *messages: Any) -> None:
        tx = self._begin(ctx)

        try:
            self._callback(tx).handle(ctx, *messages)
        except BaseException:
            _rollback_quietly(tx)
            raise

        try:
            tx.commit()
        except Exception as err:
            self._logger.log(_log_level(err), "Unable to commit transaction [%s].", err)
            self._report_committed(err)
            _rollback_quietly(tx)
            raise

        self._report_committed(None)

    def _begin(self, ctx: Context) -> Transaction:
        try:
            tx = self._database.begin(ctx, self._isolation_level, self._read_only)
        except Exception as err:
            self._logger.warning("Unable to begin transaction [%s].", err)
            self._report_started(err)
            raise
        self._report_started(None)
        return tx

    def _report_started(self, error: Optional[BaseException]) -> None:
        if self._monitor is not None:
            self._monitor.transaction_started(error)

    def _report_committed(self, error: Optional[BaseException]) -> None:
        if self._monitor is not None:
            self._monitor.transaction_committed(error)