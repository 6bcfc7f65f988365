"""Core message types and the interfaces messaging components implement."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from messaging.cancellation import Context


class EmptyDispatchTopicError(ValueError):
    """Raised when a dispatch has no destination topic."""

    def __init__(self, message: str = "the destination topic is missing") -> None:
        super().__init__(message)


@dataclass
class Delivery:
    """A message received from the messaging infrastructure."""

    upstream: Any = None
    delivery_id: int = 0
    source_id: int = 0
    message_id: int = 0
    correlation_id: int = 0
    timestamp: Optional[datetime] = None
    durable: bool = False
    topic: str = ""
    partition: int = 0
    message_type: str = ""
    content_type: str = ""
    content_encoding: str = ""
    payload: bytes = b""
    headers: dict[str, Any] = field(default_factory=dict)
    message: Any = None


@dataclass
class StreamConfig:
    """Settings for opening a stream of deliveries."""

    establish_topology: bool = False
    exclusive_stream: bool = False
    buffer_capacity: int = 0
    max_message_bytes: int = 0
    stream_name: str = ""
    stream_replication: bool = False
    group_name: str = ""
    topics: list[str] = field(default_factory=list)
    available_topics: list[str] = field(default_factory=list)
    partition: int = 0
    sequence: int = 0


@dataclass
class Dispatch:
    """A message to be written to the messaging infrastructure.

    ``partition`` is a partition key used to choose a partition, not the
    partition itself.
    """

    source_id: int = 0
    message_id: int = 0
    correlation_id: int = 0
    timestamp: Optional[datetime] = None
    expiration: timedelta = field(default_factory=timedelta)
    durable: bool = False
    topic: str = ""
    partition: int = 0
    message_type: str = ""
    content_type: str = ""
    content_encoding: str = ""
    payload: bytes = b""
    headers: dict[str, Any] = field(default_factory=dict)
    message: Any = None


class _Closeable(ABC):
    @abstractmethod
    def close(self) -> None:
        """Release the resource."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class Listener(ABC):
    @abstractmethod
    def listen(self) -> None:
        """Run until the listener is stopped."""


class ListenCloser(Listener, _Closeable):
    @abstractmethod
    def close(self) -> None:
        """Stop listening and release resources."""


class Handler(ABC):
    @abstractmethod
    def handle(self, ctx: Context, *messages: Any) -> None:
        """Process a batch of messages; failures are raised."""


class Connector(_Closeable):
    @abstractmethod
    def connect(self, ctx: Context) -> "Connection":
        """Open a new connection."""

    @abstractmethod
    def close(self) -> None:
        """Close the connector and any connections it tracks."""


class Connection(_Closeable):
    @abstractmethod
    def reader(self, ctx: Context) -> "Reader":
        """Open a reader on this connection."""

    @abstractmethod
    def writer(self, ctx: Context) -> "Writer":
        """Open a writer on this connection."""

    @abstractmethod
    def commit_writer(self, ctx: Context) -> "CommitWriter":
        """Open a transactional writer on this connection."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""


class Reader(_Closeable):
    @abstractmethod
    def stream(self, ctx: Context, config: StreamConfig) -> "Stream":
        """Open a stream of deliveries."""

    @abstractmethod
    def close(self) -> None:
        """Close the reader and its streams."""


class Stream(_Closeable):
    @abstractmethod
    def read(self, ctx: Context, delivery: Delivery) -> None:
        """Fill ``delivery`` with the next message received."""

    @abstractmethod
    def acknowledge(self, ctx: Context, *deliveries: Delivery) -> None:
        """Acknowledge the given deliveries."""

    @abstractmethod
    def close(self) -> None:
        """Close the stream."""


class Writer(_Closeable):
    @abstractmethod
    def write(self, ctx: Context, *dispatches: Dispatch) -> int:
        """Write dispatches and return how many were written."""

    @abstractmethod
    def close(self) -> None:
        """Close the writer."""


class CommitWriter(Writer):
    @abstractmethod
    def commit(self) -> None:
        """Commit everything written so far."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard everything written since the last commit."""