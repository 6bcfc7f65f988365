"""Serialization errors, serializer interfaces and the default JSON serializer."""

from __future__ import annotations

import dataclasses
import json
from abc import ABC, abstractmethod
from typing import Any, Optional


class SerializationError(Exception):
    """Base class for every error raised while encoding or decoding messages."""

    default_message = "serialization error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class MessageTypeNotAllowedError(SerializationError):
    """Raised for message types outside the configured allowed set."""

    default_message = "message type not allowed"


class SerializationFailure(SerializationError):
    """Raised when a message cannot be encoded or decoded."""

    default_message = "serialization failure"


class UnknownContentTypeError(SerializationFailure):
    """Raised when no deserializer handles a delivery's content type."""

    default_message = "the content type provided was not understood"


class MessageTypeNotFoundError(SerializationFailure):
    """Raised when a message type has no registered counterpart."""

    default_message = "the message type provided was not understood"


class MalformedPayloadError(SerializationError, ValueError):
    """Raised when a payload cannot be understood by the deserializer."""

    default_message = "the payload provided was not understood by the deserializer"


class UnsupportedTypeError(SerializationError, TypeError):
    """Raised when an instance cannot be serialized."""

    default_message = "the type provided cannot be serialized"


class Serializer(ABC):
    """Turns message instances into payload bytes."""

    content_type: str = ""

    @abstractmethod
    def serialize(self, instance: Any) -> bytes:
        """Return the payload for ``instance``."""


class Deserializer(ABC):
    """Turns payload bytes back into instances of a given type."""

    content_type: str = ""

    @abstractmethod
    def deserialize(self, source: bytes, target_type: type) -> Any:
        """Return an instance of ``target_type`` read from ``source``."""


def _encode_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _convert(value: Any, target_type: Any) -> Any:
    if target_type is None or target_type is Any or target_type is object:
        return value
    if dataclasses.is_dataclass(target_type) and isinstance(target_type, type):
        if not isinstance(value, dict):
            raise TypeError(f"cannot read {type(value).__name__} into {target_type.__name__}")
        return target_type(**value)
    if target_type is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if target_type is int and isinstance(value, bool):
        raise TypeError("cannot read bool into int")
    try:
        matches = isinstance(value, target_type)
    except TypeError:
        return value
    if not matches:
        raise TypeError(
            f"cannot read {type(value).__name__} into {getattr(target_type, '__name__', target_type)}"
        )
    return value


class JSONSerializer(Serializer, Deserializer):
    """Reads and writes compact UTF-8 JSON; dataclasses map to objects."""

    content_type = "application/json"

    def serialize(self, instance: Any) -> bytes:
        try:
            text = json.dumps(
                instance,
                default=_encode_default,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            )
        except (TypeError, ValueError) as err:
            raise UnsupportedTypeError(f"{UnsupportedTypeError.default_message}: [{err}]") from err
        return text.encode("utf-8")

    def deserialize(self, source: bytes, target_type: type) -> Any:
        try:
            return _convert(json.loads(source), target_type)
        except (TypeError, ValueError) as err:
            raise MalformedPayloadError(f"{MalformedPayloadError.default_message}: [{err}]") from err