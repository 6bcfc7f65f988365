"""A handler that passes every batch of messages to several handlers in turn."""

from messaging.contracts import Handler


class MultiHandler(Handler):
    """Calls each wrapped handler in order; the first failure stops the rest."""

    def __init__(self, *handlers):
        self._handlers = handlers

    def handle(self, ctx, *messages):
        for handler in self._handlers:
            handler.handle(ctx, *messages)