"""A handler that retries a failing inner handler until it succeeds."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Iterable, Optional, Union

from messaging.cancellation import Context
from messaging.contracts import Handler

_LOGGER = logging.getLogger("messaging.retry")

DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_ATTEMPTS = (1 << 32) - 1


class MaxRetriesExceededError(Exception):
    """Raised when the inner handler keeps failing past the attempt limit."""

    def __init__(self, message: str = "maximum number of retry attempts exceeded") -> None:
        super().__init__(message)


class RetryHandler(Handler):
    """Retries the inner handler, pausing ``timeout`` seconds between attempts.

    Retrying stops when the context is cancelled. With ``max_attempts`` above
    zero, a failure on attempt number ``max_attempts`` (counted from zero)
    raises MaxRetriesExceededError. Errors listed in ``immediate_retry``, as
    instances or exception classes, are retried without pausing.
    """

    def __init__(
        self,
        inner: Handler,
        timeout: Union[float, timedelta] = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        immediate_retry: Iterable[Any] = (),
        logger: Optional[logging.Logger] = None,
        monitor: Any = None,
        log_stack_trace: bool = True,
    ) -> None:
        self._inner = inner
        self._timeout = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
        self._max_attempts = int(max_attempts)
        self._immediate = tuple(immediate_retry)
        self._logger = logger or _LOGGER
        self._monitor = monitor
        self._log_stack_trace = log_stack_trace

    def handle(self, ctx: Context, *messages: Any) -> None:
        attempt = 0
        while not ctx.done():
            if self._attempt(ctx, attempt, messages):
                return
            attempt += 1

    def _report(self, attempt: int, error: Optional[BaseException]) -> None:
        if self._monitor is not None:
            self._monitor.handle_attempted(attempt, error)

    def _attempt(self, ctx: Context, attempt: int, messages: tuple) -> bool:
        try:
            self._inner.handle(ctx, *messages)
        except Exception as err:
            self._report(attempt, err)
            self._handle_failure(ctx, attempt, err)
            return False

        self._report(attempt, None)
        if attempt > 0:
            self._logger.info(
                "Operation completed successfully after [%d] failed attempt(s).", attempt
            )
        return True

    def _handle_failure(self, ctx: Context, attempt: int, err: Exception) -> None:
        self._logger.info(
            "Attempt [%d] operation failure [%s].",
            attempt,
            err,
            exc_info=err if self._log_stack_trace else None,
        )
        if self._max_attempts > 0 and attempt >= self._max_attempts:
            raise MaxRetriesExceededError() from err
        if not self._is_immediate(err):
            ctx.wait(self._timeout)

    def _is_immediate(self, err: Exception) -> bool:
        return any(
            item is err or (isinstance(item, type) and isinstance(err, item))
            for item in self._immediate
        )