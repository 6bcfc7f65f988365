"""Decoding of deliveries into messages and encoding of messages into dispatches."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from messaging.contracts import Delivery, Dispatch
from messaging.serializer import (
    Deserializer,
    JSONSerializer,
    MessageTypeNotAllowedError,
    MessageTypeNotFoundError,
    SerializationFailure,
    Serializer,
    UnknownContentTypeError,
)

_LOGGER = logging.getLogger("messaging.serialization")


def _notify(monitor: Any, event: str, error: Optional[BaseException]) -> None:
    if monitor is not None:
        getattr(monitor, event)(error)


def _wrap(err: BaseException) -> SerializationFailure:
    failure = SerializationFailure(f"{SerializationFailure.default_message}: {err}")
    failure.__cause__ = err
    return failure


def _failure(error_type: type, value: str) -> SerializationFailure:
    return error_type(
        f"{SerializationFailure.default_message}: {error_type.default_message}: [{value}]"
    )


def _default_deserializers() -> dict[str, Deserializer]:
    json_serializer = JSONSerializer()
    return {json_serializer.content_type: json_serializer, "": json_serializer}


class DeliveryDecoder:
    """Fills ``Delivery.message`` from the payload using registered types."""

    def __init__(
        self,
        read_types: Optional[Mapping[str, type]] = None,
        deserializers: Optional[Mapping[str, Deserializer]] = None,
        allowed_types: Optional[set[str]] = None,
        ignore_unknown_message_types: bool = False,
        ignore_unknown_content_types: bool = False,
        ignore_deserialization_errors: bool = False,
        logger: Optional[logging.Logger] = None,
        monitor: Any = None,
    ) -> None:
        self._message_types = dict(read_types or {})
        self._content_types = (
            dict(deserializers) if deserializers is not None else _default_deserializers()
        )
        self._allowed_types = set(allowed_types or ())
        self._ignore_unknown_message_types = ignore_unknown_message_types
        self._ignore_unknown_content_types = ignore_unknown_content_types
        self._ignore_deserialization_errors = ignore_deserialization_errors
        self._logger = logger or _LOGGER
        self._monitor = monitor

    def decode(self, delivery: Delivery) -> None:
        """Decode the delivery's payload in place.

        Raises MessageTypeNotAllowedError for types outside the allowed set and
        SerializationFailure when decoding fails and is not ignored.
        """
        if not delivery.payload or delivery.message is not None:
            return

        if delivery.message_type not in self._message_types:
            self._reject(
                self._ignore_unknown_message_types,
                MessageTypeNotFoundError,
                delivery.message_type,
                "Ignoring unknown message of type [%s].",
                "Unable to decode message of type [%s].",
            )
            return
        instance_type = self._message_types[delivery.message_type]

        if self._allowed_types and delivery.message_type not in self._allowed_types:
            raise MessageTypeNotAllowedError()

        deserializer = self._content_types.get(delivery.content_type)
        if deserializer is None:
            self._reject(
                self._ignore_unknown_content_types,
                UnknownContentTypeError,
                delivery.content_type,
                "Ignoring message with Content-Type [%s].",
                "Unable to decode message with Content-Type [%s].",
            )
            return

        try:
            message = deserializer.deserialize(delivery.payload, instance_type)
        except Exception as err:
            self._handle_deserialization_error(delivery, err)
            return

        _notify(self._monitor, "message_decoded", None)
        delivery.message = message

    def _reject(
        self, ignore: bool, error_type: type, value: str, ignoring: str, failing: str
    ) -> None:
        _notify(self._monitor, "message_decoded", error_type())
        if ignore:
            self._logger.warning(ignoring, value)
            return
        self._logger.warning(failing, value)
        raise _failure(error_type, value)

    def _handle_deserialization_error(self, delivery: Delivery, err: Exception) -> None:
        _notify(self._monitor, "message_decoded", err)
        if self._ignore_deserialization_errors:
            self._logger.warning(
                "Ignoring deserialization error for message of type [%s]: %s",
                delivery.message_type,
                err,
            )
            return
        self._logger.warning(
            "Unable to deserialize message of type [%s]: %s", delivery.message_type, err
        )
        raise _wrap(err) from err


class DispatchEncoder:
    """Fills a dispatch's payload, content type and message type from its message."""

    def __init__(
        self,
        write_types: Optional[Mapping[type, str]] = None,
        serializer: Optional[Serializer] = None,
        topic_from_message_type: bool = True,
        logger: Optional[logging.Logger] = None,
        monitor: Any = None,
    ) -> None:
        self._message_types = dict(write_types or {})
        self._serializer = serializer or JSONSerializer()
        self._content_type = self._serializer.content_type
        self._topic_from_message_type = topic_from_message_type
        self._logger = logger or _LOGGER
        self._monitor = monitor

    def encode(self, dispatch: Dispatch) -> None:
        """Serialize the dispatch's message in place; raises SerializationFailure."""
        if dispatch.payload or dispatch.message is None:
            return

        instance_type = type(dispatch.message)
        message_type = self._message_types.get(instance_type)
        if message_type is None:
            _notify(self._monitor, "message_encoded", MessageTypeNotFoundError())
            self._logger.warning(
                "Unable to encode message of type [%s], message type not found.",
                instance_type.__name__,
            )
            raise _failure(MessageTypeNotFoundError, instance_type.__name__)

        try:
            raw = self._serializer.serialize(dispatch.message)
        except Exception as err:
            _notify(self._monitor, "message_encoded", err)
            self._logger.warning(
                "Unable to serialize message of type [%s]: %s", instance_type.__name__, err
            )
            raise _wrap(err) from err

        _notify(self._monitor, "message_encoded", None)
        dispatch.content_type = self._content_type
        dispatch.message_type = message_type
        dispatch.payload = raw

        if self._topic_from_message_type and not dispatch.topic:
            dispatch.topic = message_type