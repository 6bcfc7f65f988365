"""Connector decorators that encode dispatches and decode deliveries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Optional

from messaging.cancellation import Context
from messaging.contracts import (
    CommitWriter,
    Connection,
    Connector,
    Delivery,
    Dispatch,
    Reader,
    Stream,
    StreamConfig,
)
from messaging.decoding import DeliveryDecoder, DispatchEncoder
from messaging.serializer import (
    Deserializer,
    JSONSerializer,
    MessageTypeNotAllowedError,
    Serializer,
)


class SerializingConnector(Connector):
    """Wraps a connector so its connections encode and decode messages."""

    def __init__(self, inner: Connector, decoder: Any, encoder: Any) -> None:
        self._inner = inner
        self._decoder = decoder
        self._encoder = encoder

    def connect(self, ctx: Context) -> "SerializingConnection":
        connection = self._inner.connect(ctx)
        return SerializingConnection(connection, self._decoder, self._encoder)

    def close(self) -> None:
        self._inner.close()


class SerializingConnection(Connection):
    """Wraps a connection so its readers decode and its writers encode."""

    def __init__(self, inner: Connection, decoder: Any, encoder: Any) -> None:
        self._inner = inner
        self._decoder = decoder
        self._encoder = encoder

    def reader(self, ctx: Context) -> "SerializingReader":
        return SerializingReader(self._inner.reader(ctx), self._decoder)

    def writer(self, ctx: Context) -> "EncodingWriter":
        return EncodingWriter(self._inner.writer(ctx), self._encoder)

    def commit_writer(self, ctx: Context) -> "EncodingWriter":
        return EncodingWriter(self._inner.commit_writer(ctx), self._encoder)

    def close(self) -> None:
        self._inner.close()


class SerializingReader(Reader):
    """Wraps a reader so its streams decode deliveries."""

    def __init__(self, inner: Reader, decoder: Any) -> None:
        self._inner = inner
        self._decoder = decoder

    def stream(self, ctx: Context, config: StreamConfig) -> "DecodingStream":
        return DecodingStream(self._inner.stream(ctx, config), self._decoder)

    def close(self) -> None:
        self._inner.close()


class DecodingStream(Stream):
    """Decodes each delivery read; disallowed message types pass through undecoded."""

    def __init__(self, inner: Stream, decoder: Any) -> None:
        self._inner = inner
        self._decoder = decoder

    def read(self, ctx: Context, delivery: Delivery) -> None:
        self._inner.read(ctx, delivery)
        try:
            self._decoder.decode(delivery)
        except MessageTypeNotAllowedError:
            return

    def acknowledge(self, ctx: Context, *deliveries: Delivery) -> None:
        self._inner.acknowledge(ctx, *deliveries)

    def close(self) -> None:
        self._inner.close()


class EncodingWriter(CommitWriter):
    """Encodes every dispatch before handing the batch to the inner writer."""

    def __init__(self, inner: Any, encoder: Any) -> None:
        self._inner = inner
        self._encoder = encoder

    def write(self, ctx: Context, *dispatches: Dispatch) -> int:
        for dispatch in dispatches:
            self._encoder.encode(dispatch)
        return self._inner.write(ctx, *dispatches)

    def commit(self) -> None:
        self._inner.commit()

    def rollback(self) -> None:
        self._inner.rollback()

    def close(self) -> None:
        self._inner.close()


@dataclass
class _Options:
    serializer: Serializer = field(default_factory=JSONSerializer)
    deserializers: dict[str, Deserializer] = field(default_factory=dict)
    allowed_types: Optional[set[str]] = None
    read_types: dict[str, type] = field(default_factory=dict)
    write_types: dict[type, str] = field(default_factory=dict)
    ignore_unknown_message_types: bool = False
    ignore_unknown_content_types: bool = False
    ignore_deserialization_errors: bool = False
    topic_from_message_type: bool = True
    logger: Optional[logging.Logger] = None
    monitor: Any = None
    decoder: Any = None
    encoder: Any = None


_OPTION_NAMES = frozenset(item.name for item in fields(_Options))


def new(connector: Connector, **kwargs: Any) -> SerializingConnector:
    """Wrap ``connector`` so messages are serialized on write and read.

    Options: serializer, deserializers (content type to deserializer, added to
    the JSON defaults), allowed_types, read_types, write_types,
    ignore_unknown_message_types, ignore_unknown_content_types,
    ignore_deserialization_errors, topic_from_message_type (default True),
    logger, monitor, decoder and encoder.
    """
    unknown = sorted(set(kwargs) - _OPTION_NAMES)
    if unknown:
        raise TypeError(f"new() got unexpected option(s): {', '.join(unknown)}")
    options = _Options(**kwargs)

    decoder = options.decoder
    if decoder is None:
        json_serializer = JSONSerializer()
        deserializers: dict[str, Deserializer] = {
            json_serializer.content_type: json_serializer,
            "": json_serializer,
        }
        deserializers.update(options.deserializers)
        decoder = DeliveryDecoder(
            read_types=options.read_types,
            deserializers=deserializers,
            allowed_types=options.allowed_types,
            ignore_unknown_message_types=options.ignore_unknown_message_types,
            ignore_unknown_content_types=options.ignore_unknown_content_types,
            ignore_deserialization_errors=options.ignore_deserialization_errors,
            logger=options.logger,
            monitor=options.monitor,
        )

    encoder = options.encoder
    if encoder is None:
        encoder = DispatchEncoder(
            write_types=options.write_types,
            serializer=options.serializer,
            topic_from_message_type=options.topic_from_message_type,
            logger=options.logger,
            monitor=options.monitor,
        )

    return SerializingConnector(connector, decoder, encoder)