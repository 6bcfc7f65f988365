# messaging

Broker-neutral building blocks for reading and writing messages.

The package defines a small set of contracts (`Connector`, `Connection`,
`Reader`, `Stream`, `Writer`, `CommitWriter`, `Handler`, `Listener`,
`ListenCloser`) and a handful of ready-made pieces that work with any
implementation of them:

| Module                    | What it gives you                                                          |
|---------------------------|----------------------------------------------------------------------------|
| `messaging.contracts`     | The contracts, the `Delivery`, `Dispatch` and `StreamConfig` dataclasses, `EmptyDispatchTopicError` |
| `messaging.cancellation`  | `Context`, a cancellable token passed to every operation, and `background()` |
| `messaging.batch`         | `BatchWriter` / `new_writer`: connect lazily, write, commit, reuse or discard |
| `messaging.serializer`    | `JSONSerializer`, the `Serializer`/`Deserializer` interfaces and the error hierarchy |
| `messaging.decoding`      | `DeliveryDecoder` and `DispatchEncoder`                                     |
| `messaging.serialization` | `new()`: a connector wrapper that encodes on write and decodes on read      |
| `messaging.multi`         | `MultiHandler`: pass a batch of messages to several handlers in turn        |
| `messaging.retry`         | `RetryHandler`: retry a failing handler until it succeeds                   |
| `messaging.sqltx`         | `SqlTransactionHandler`: run a handler inside a database transaction        |
| `messaging.transactional` | `TransactionalHandler`: run a handler with a transactional commit writer    |

The package has no runtime dependencies.

## What the package does not include

There is no client for any particular message broker. To talk to a broker
you supply your own `Connector` (and the `Connection`, `Reader`, `Stream` and
`CommitWriter` it hands out); everything here wraps or drives such an
implementation. There is no command-line tool and no server.

## Cancellation

Every operation takes a `Context`. A context derived from a parent is
cancelled when the parent is; cancelling a child leaves the parent alone.
`check()` raises `ContextCancelledError` once the context is cancelled, and
`wait(timeout)` blocks until cancellation or the timeout.

```python
from messaging.cancellation import Context, ContextCancelledError, background

root = background()
ctx = Context(root)
root.cancel()
assert ctx.done()
try:
    ctx.check()
except ContextCancelledError:
    pass
```

A `Context` is also a context manager that cancels itself on exit.

## Writing in batches

`new_writer(connector, reuse_writer=True)` returns a `BatchWriter`. Writing
no dispatches returns 0 and does nothing. Otherwise the context is checked,
the first write opens a connection and a commit writer, and each call writes
the dispatches, commits them and returns their number. Any failure closes
the connection and writer and is raised; the next write reconnects. With
`reuse_writer=False` the connection and writer are closed after every batch,
which suits writers that may only be used once.

```python
from messaging.batch import new_writer
from messaging.cancellation import background
from messaging.contracts import Dispatch

writer = new_writer(my_connector)  # any Connector implementation
count = writer.write(background(), Dispatch(topic="orders", payload=b"{}"))
writer.close()
```

## Serialization

`messaging.serialization.new(connector, **options)` wraps a connector. On the
way out, each dispatch with a `message` and an empty `payload` is serialized:
its `payload`, `content_type` and `message_type` are filled in, and its
`topic` is set to the message type if empty (unless
`topic_from_message_type=False`). On the way in, each delivery with a
payload and no `message` is deserialized into `message`.

```python
from dataclasses import dataclass

from messaging import serialization

@dataclass
class OrderPlaced:
    order_id: int

connector = serialization.new(
    my_connector,
    read_types={"order-placed": OrderPlaced},
    write_types={OrderPlaced: "order-placed"},
)
```

Options: `serializer`, `deserializers` (content type to deserializer, added
to the JSON defaults registered for `"application/json"` and the empty
content type), `allowed_types`, `read_types`, `write_types`,
`ignore_unknown_message_types`, `ignore_unknown_content_types`,
`ignore_deserialization_errors`, `topic_from_message_type`, `logger`,
`monitor`, `decoder` and `encoder`. An unknown option raises `TypeError`.

`JSONSerializer` writes compact UTF-8 JSON; dataclasses are written as
objects and read back from objects. It raises `UnsupportedTypeError` and
`MalformedPayloadError`. The decoder and encoder raise `SerializationFailure`
(or its subclasses `MessageTypeNotFoundError` and `UnknownContentTypeError`)
unless the matching `ignore_*` option is set. A delivery whose message type
is outside a non-empty `allowed_types` set is returned by the stream without
a decoded message.

A monitor, if given, receives `message_encoded(error)` and
`message_decoded(error)` calls, with `None` on success.

## Handlers

Handlers receive a context and any number of messages.

```python
from messaging.multi import MultiHandler
from messaging.retry import RetryHandler

handler = RetryHandler(MultiHandler(audit_handler, projection_handler), max_attempts=5)
handler.handle(ctx, first_message, second_message)
```

`MultiHandler` calls each handler in order; the first error stops the rest.

`RetryHandler(inner, timeout=5.0, max_attempts=2**32 - 1, immediate_retry=(),
logger=None, monitor=None, log_stack_trace=True)` calls the inner handler
again after each failure, waiting `timeout` seconds (a number or a
`timedelta`) unless the error, or its class, is listed in `immediate_retry`.
Attempts are counted from zero; a failure on attempt `max_attempts` raises
`MaxRetriesExceededError` (a `max_attempts` of 0 means no limit). It stops
quietly when the context is cancelled. A monitor receives
`handle_attempted(attempt, error)`.

`TransactionalHandler(connector, factory, logger=None, monitor=None)` opens a
connection and a commit writer for each call, passing the writer a
`TransactionalContext` on which it may `store()` a transaction. It builds the
inner handler with `factory(State(tx, writer))`, commits when the inner
handler returns, rolls back when anything raises, and always closes the
writer and connection. A `None` context raises `ValueError`.

`SqlTransactionHandler(database, callback, read_only=False,
isolation_level=IsolationLevel.READ_COMMITTED, logger=None, monitor=None)`
opens a transaction with `database.begin(ctx, isolation_level, read_only)`,
gets the inner handler from `callback(tx)`, commits on success and rolls
back and re-raises on failure.

Both transaction handlers report to a monitor through
`transaction_started(error)`, `transaction_committed(error)` and, for
`TransactionalHandler`, `transaction_rolled_back(error)`.

## Logging

Components log through the standard `logging` module, by default to the
loggers `messaging.serialization`, `messaging.retry`, `messaging.sqltx` and
`messaging.transactional`; pass `logger=` to use another.