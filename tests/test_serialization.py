from dataclasses import dataclass

import pytest

from messaging import serialization
from messaging.cancellation import background
from messaging.contracts import Delivery, Dispatch, StreamConfig
from messaging.serializer import MessageTypeNotAllowedError


class Boom(Exception):
    pass


class FakeBroker:
    """Plays connector, connection, reader, stream, writer, encoder and decoder."""

    def __init__(self):
        self.connect_error = None
        self.reader_error = None
        self.writer_error = None
        self.commit_writer_error = None
        self.close_error = None
        self.stream_error = None
        self.read_error = None
        self.ack_error = None
        self.encode_error = None
        self.decode_error = None
        self.commit_error = None
        self.rollback_error = None
        self.write_error = None

        self.connect_context = None
        self.reader_context = None
        self.writer_context = None
        self.commit_writer_context = None
        self.stream_context = None
        self.stream_config = None
        self.read_context = None
        self.read_delivery = None
        self.ack_context = None
        self.ack_deliveries = []
        self.write_context = None
        self.write_dispatches = []
        self.next_delivery = None

    @staticmethod
    def _raise(error):
        if error is not None:
            raise error

    def connect(self, ctx):
        self.connect_context = ctx
        self._raise(self.connect_error)
        return self

    def close(self):
        self._raise(self.close_error)

    def reader(self, ctx):
        self.reader_context = ctx
        self._raise(self.reader_error)
        return self

    def writer(self, ctx):
        self.writer_context = ctx
        self._raise(self.writer_error)
        return self

    def commit_writer(self, ctx):
        self.commit_writer_context = ctx
        self._raise(self.commit_writer_error)
        return self

    def write(self, ctx, *dispatches):
        self.write_context = ctx
        self.write_dispatches = list(dispatches)
        self._raise(self.write_error)
        return len(dispatches)

    def commit(self):
        self._raise(self.commit_error)

    def rollback(self):
        self._raise(self.rollback_error)

    def stream(self, ctx, config):
        self.stream_context = ctx
        self.stream_config = config
        self._raise(self.stream_error)
        return self

    def read(self, ctx, delivery):
        self.read_context = ctx
        self.read_delivery = delivery
        self._raise(self.read_error)
        if self.next_delivery is not None:
            delivery.message_type = self.next_delivery.message_type
            delivery.content_type = self.next_delivery.content_type
            delivery.payload = self.next_delivery.payload

    def acknowledge(self, ctx, *deliveries):
        self.ack_context = ctx
        self.ack_deliveries = list(deliveries)
        self._raise(self.ack_error)

    def encode(self, dispatch):
        dispatch.message_id = 42
        self._raise(self.encode_error)

    def decode(self, delivery):
        delivery.message_id = 42
        self._raise(self.decode_error)


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def ctx():
    return background()


@pytest.fixture
def connector(broker):
    return serialization.new(broker, decoder=broker, encoder=broker)


def open_stream(connector, ctx):
    connection = connector.connect(ctx)
    reader = connection.reader(ctx)
    return reader.stream(ctx, StreamConfig())


def test_when_opening_connection_fails_raise_underlying_error(broker, connector, ctx):
    broker.connect_error = Boom()

    with pytest.raises(Boom) as excinfo:
        connector.connect(ctx)

    assert excinfo.value is broker.connect_error
    assert broker.connect_context is ctx


def test_when_opening_reader_fails_raise_underlying_error(broker, connector, ctx):
    broker.reader_error = Boom()
    connection = connector.connect(ctx)

    with pytest.raises(Boom) as excinfo:
        connection.reader(ctx)

    assert excinfo.value is broker.reader_error
    assert broker.reader_context is ctx


def test_when_opening_writer_fails_raise_underlying_error(broker, connector, ctx):
    broker.writer_error = Boom()
    connection = connector.connect(ctx)

    with pytest.raises(Boom) as excinfo:
        connection.writer(ctx)

    assert excinfo.value is broker.writer_error
    assert broker.writer_context is ctx


def test_when_opening_commit_writer_fails_raise_underlying_error(broker, connector, ctx):
    broker.commit_writer_error = Boom()
    connection = connector.connect(ctx)

    with pytest.raises(Boom) as excinfo:
        connection.commit_writer(ctx)

    assert excinfo.value is broker.commit_writer_error
    assert broker.commit_writer_context is ctx


def test_closing_connector_closes_underlying(broker, connector):
    broker.close_error = Boom()

    with pytest.raises(Boom) as excinfo:
        connector.close()

    assert excinfo.value is broker.close_error


def test_closing_connection_closes_underlying(broker, connector, ctx):
    broker.close_error = Boom()
    connection = connector.connect(ctx)

    with pytest.raises(Boom) as excinfo:
        connection.close()

    assert excinfo.value is broker.close_error


def test_closing_reader_closes_underlying(broker, connector, ctx):
    broker.close_error = Boom()
    reader = connector.connect(ctx).reader(ctx)

    with pytest.raises(Boom) as excinfo:
        reader.close()

    assert excinfo.value is broker.close_error


def test_closing_stream_closes_underlying(broker, connector, ctx):
    broker.close_error = Boom()
    stream = open_stream(connector, ctx)

    with pytest.raises(Boom) as excinfo:
        stream.close()

    assert excinfo.value is broker.close_error


def test_closing_writer_closes_underlying(broker, connector, ctx):
    broker.close_error = Boom()
    writer = connector.connect(ctx).writer(ctx)

    with pytest.raises(Boom) as excinfo:
        writer.close()

    assert excinfo.value is broker.close_error


def test_closing_commit_writer_closes_underlying(broker, connector, ctx):
    broker.close_error = Boom()
    writer = connector.connect(ctx).commit_writer(ctx)

    with pytest.raises(Boom) as excinfo:
        writer.close()

    assert excinfo.value is broker.close_error


def test_committing_commit_writer_commits_underlying(broker, connector, ctx):
    broker.commit_error = Boom()
    writer = connector.connect(ctx).commit_writer(ctx)

    with pytest.raises(Boom) as excinfo:
        writer.commit()

    assert excinfo.value is broker.commit_error


def test_rolling_back_commit_writer_rolls_back_underlying(broker, connector, ctx):
    broker.rollback_error = Boom()
    broker.commit_error = Boom()
    writer = connector.connect(ctx).commit_writer(ctx)

    with pytest.raises(Boom) as excinfo:
        writer.rollback()

    assert excinfo.value is broker.rollback_error


def test_when_opening_stream_fails_raise_underlying_error(broker, connector, ctx):
    broker.stream_error = Boom()
    reader = connector.connect(ctx).reader(ctx)
    config = StreamConfig(stream_name="queue")

    with pytest.raises(Boom) as excinfo:
        reader.stream(ctx, config)

    assert excinfo.value is broker.stream_error
    assert broker.stream_context is ctx
    assert broker.stream_config == config


def test_when_reading_from_stream_fails_raise_underlying_error(broker, connector, ctx):
    broker.read_error = Boom()
    stream = open_stream(connector, ctx)
    delivery = Delivery()

    with pytest.raises(Boom) as excinfo:
        stream.read(ctx, delivery)

    assert excinfo.value is broker.read_error
    assert broker.read_context is ctx
    assert broker.read_delivery is delivery


def test_when_acknowledging_fails_raise_underlying_error(broker, connector, ctx):
    broker.ack_error = Boom()
    stream = open_stream(connector, ctx)
    delivery = Delivery()

    with pytest.raises(Boom) as excinfo:
        stream.acknowledge(ctx, delivery)

    assert excinfo.value is broker.ack_error
    assert broker.ack_context is ctx
    assert broker.ack_deliveries == [delivery]


def test_when_reading_from_stream_decode_delivery(broker, connector, ctx):
    broker.decode_error = Boom()
    stream = open_stream(connector, ctx)
    delivery = Delivery()

    with pytest.raises(Boom) as excinfo:
        stream.read(ctx, delivery)

    assert excinfo.value is broker.decode_error
    assert delivery.message_id == 42


def test_when_decoding_disallowed_type_no_error(broker, connector, ctx):
    broker.decode_error = MessageTypeNotAllowedError()
    stream = open_stream(connector, ctx)
    delivery = Delivery()

    stream.read(ctx, delivery)

    assert delivery.message_id == 42


def test_when_writing_encode_then_call_inner(broker, connector, ctx):
    broker.write_error = Boom()
    writer = connector.connect(ctx).writer(ctx)

    with pytest.raises(Boom) as excinfo:
        writer.write(ctx, Dispatch())

    assert excinfo.value is broker.write_error
    assert broker.write_dispatches == [Dispatch(message_id=42)]
    assert broker.write_context is ctx


def test_when_commit_writing_encode_then_call_inner(broker, connector, ctx):
    broker.write_error = Boom()
    writer = connector.connect(ctx).commit_writer(ctx)

    with pytest.raises(Boom) as excinfo:
        writer.write(ctx, Dispatch())

    assert excinfo.value is broker.write_error
    assert broker.write_dispatches == [Dispatch(message_id=42)]
    assert broker.write_context is ctx


def test_successful_write_returns_inner_count(broker, connector, ctx):
    writer = connector.connect(ctx).commit_writer(ctx)

    count = writer.write(ctx, Dispatch(), Dispatch())

    assert count == 2
    assert [d.message_id for d in broker.write_dispatches] == [42, 42]


def test_when_encode_fails_raise_and_skip_inner_write(broker, connector, ctx):
    broker.encode_error = Boom()
    writer = connector.connect(ctx).commit_writer(ctx)

    with pytest.raises(Boom) as excinfo:
        writer.write(ctx, Dispatch())

    assert excinfo.value is broker.encode_error
    assert broker.write_dispatches == []


@dataclass
class OrderPlaced:
    order: str
    quantity: int


def test_default_configuration_round_trips_json(broker, ctx):
    connector = serialization.new(
        broker,
        read_types={"order-placed": OrderPlaced},
        write_types={OrderPlaced: "order-placed"},
    )
    connection = connector.connect(ctx)

    connection.commit_writer(ctx).write(ctx, Dispatch(message=OrderPlaced("abc", 2)))
    written = broker.write_dispatches[0]

    broker.next_delivery = Delivery(
        message_type=written.message_type,
        content_type=written.content_type,
        payload=written.payload,
    )
    delivery = Delivery()
    connection.reader(ctx).stream(ctx, StreamConfig()).read(ctx, delivery)

    assert written.topic == "order-placed"
    assert written.content_type == "application/json"
    assert delivery.message == OrderPlaced("abc", 2)


def test_disallowed_types_are_left_undecoded(broker, ctx):
    connector = serialization.new(
        broker, read_types={"a": dict}, allowed_types={"b"}
    )
    broker.next_delivery = Delivery(message_type="a", payload=b"{}")
    delivery = Delivery()

    open_stream(connector, ctx).read(ctx, delivery)

    assert delivery.message is None
    assert delivery.payload == b"{}"


def test_unknown_option_rejected(broker):
    with pytest.raises(TypeError, match="bogus"):
        serialization.new(broker, bogus=True)