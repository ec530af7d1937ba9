"""Tests for the MQTT adapter."""

import asyncio
import logging
from types import SimpleNamespace

import paho.mqtt.client as mqtt
import pytest
import pytest_asyncio

from kairos_persistor.adapters import MQTTClient, MQTTConnectionError
from kairos_persistor.config import BusConfig


class FakePahoClient:
    """Stands in for ``paho.mqtt.client.Client``.

    Broker acknowledgements are delivered on the event loop with
    ``call_soon``, the way paho's network thread would deliver them
    through ``call_soon_threadsafe``.
    """

    def __init__(self, loop, calls, *args, connack=0, disconnect_rc=0, rc=None, **kwargs):
        self.loop = loop
        self.calls = calls
        self.connack = connack
        self.disconnect_rc = disconnect_rc
        self.rc = rc or {}
        self.acknowledged = asyncio.Event()
        calls["constructed"] = (args, kwargs)

        self.on_connect = None
        self.on_disconnect = None
        self.on_message = None

    def enable_logger(self, logger):
        pass

    def username_pw_set(self, username, password=None):
        self.calls["credentials"] = (username, password)

    def connect_async(self, host, port, keepalive):
        self.calls["endpoint"] = (host, port, keepalive)
        self.acknowledge_connect()

    def acknowledge_connect(self):
        self.acknowledged.clear()
        self.loop.call_soon(self._deliver_connack)

    def _deliver_connack(self):
        self.on_connect(self, None, None, self.connack, None)
        self.acknowledged.set()

    def loop_start(self):
        self.calls["loop_running"] = True

    def loop_stop(self):
        self.calls["loop_running"] = False

    def disconnect(self):
        self.loop.call_soon(
            self.on_disconnect, self, None, None, self.disconnect_rc, None
        )

    def publish(self, topic, payload, qos=0, retain=False):
        self.calls.setdefault("publish", []).append((topic, payload, qos, retain))
        return SimpleNamespace(rc=self.rc.get("publish", mqtt.MQTT_ERR_SUCCESS))

    def subscribe(self, topic, qos=0):
        self.calls.setdefault("subscribe", []).append((topic, qos))
        return self.rc.get("subscribe", mqtt.MQTT_ERR_SUCCESS), 1

    def unsubscribe(self, topic):
        self.calls.setdefault("unsubscribe", []).append(topic)
        return mqtt.MQTT_ERR_SUCCESS, 2


@pytest.fixture
def paho(monkeypatch):
    """Replace the paho client class; returns the call log and the last fake."""

    calls: dict = {}
    options: dict = {}
    created: list[FakePahoClient] = []

    def factory(*args, **kwargs):
        fake = FakePahoClient(
            asyncio.get_running_loop(), calls, *args, **kwargs, **options
        )
        created.append(fake)
        return fake

    monkeypatch.setattr("kairos_persistor.adapters.mqtt.mqtt.Client", factory)
    return SimpleNamespace(calls=calls, options=options, created=created)


def bus_config(**overrides) -> BusConfig:
    values = dict(
        address="tests.kairospersistor",
        broker_host="broker.test",
        broker_port=1883,
        username="persistor",
        password="secret",
    )
    values.update(overrides)
    return BusConfig(**values)


@pytest_asyncio.fixture
async def connected(paho):
    client = MQTTClient(bus_config())
    await client.connect()
    yield client, paho
    await client.disconnect()


@pytest.mark.asyncio
async def test_connect_uses_configured_broker_and_credentials(connected):
    _, paho = connected

    assert paho.calls["endpoint"] == ("broker.test", 1883, 60)
    assert paho.calls["credentials"] == ("persistor", "secret")
    assert paho.calls["loop_running"] is True


@pytest.mark.asyncio
async def test_client_is_built_with_version2_callbacks(connected):
    _, paho = connected

    args, kwargs = paho.calls["constructed"]
    assert args == (mqtt.CallbackAPIVersion.VERSION2,)
    assert kwargs == {"client_id": "kairos-persistor"}


@pytest.mark.asyncio
async def test_anonymous_broker_skips_credentials(paho):
    client = MQTTClient(bus_config(username=None), client_id="persistor-2")
    await client.connect()
    await client.disconnect()

    assert "credentials" not in paho.calls
    assert paho.calls["constructed"][1] == {"client_id": "persistor-2"}


@pytest.mark.asyncio
async def test_publish_and_subscribe_pass_qos_through(connected):
    client, paho = connected

    client.subscribe("tests.kairospersistor", qos=2)
    client.publish("tests.kairospersistor/replies", b"{}", qos=1, retain=False)

    assert paho.calls["subscribe"] == [("tests.kairospersistor", 2)]
    assert paho.calls["publish"] == [("tests.kairospersistor/replies", b"{}", 1, False)]


@pytest.mark.asyncio
async def test_reconnect_restores_subscriptions(connected):
    client, paho = connected
    client.subscribe("tests.kairospersistor", qos=1)

    fake = paho.created[-1]
    fake.acknowledge_connect()
    await asyncio.wait_for(fake.acknowledged.wait(), timeout=1.0)

    assert paho.calls["subscribe"] == [
        ("tests.kairospersistor", 1),
        ("tests.kairospersistor", 1),
    ]


@pytest.mark.asyncio
async def test_reconnect_skips_unsubscribed_topics(connected):
    client, paho = connected
    client.subscribe("tests.kairospersistor", qos=1)
    client.unsubscribe("tests.kairospersistor")

    fake = paho.created[-1]
    fake.acknowledge_connect()
    await asyncio.wait_for(fake.acknowledged.wait(), timeout=1.0)

    assert paho.calls["subscribe"] == [("tests.kairospersistor", 1)]
    assert paho.calls["unsubscribe"] == ["tests.kairospersistor"]


@pytest.mark.asyncio
async def test_incoming_message_runs_handler_on_loop(paho):
    client = MQTTClient(bus_config())
    received = asyncio.Queue()

    async def handler(topic: str, payload: bytes) -> None:
        await received.put((topic, payload))

    client.set_message_handler(handler)
    await client.connect()

    message = SimpleNamespace(topic="tests.kairospersistor", payload=b'{"action": "version"}')
    client._on_message(client._client, None, message)  # type: ignore[arg-type]

    assert await asyncio.wait_for(received.get(), timeout=1.0) == (
        "tests.kairospersistor",
        b'{"action": "version"}',
    )
    await client.disconnect()


@pytest.mark.asyncio
async def test_handler_failure_is_logged(paho, caplog):
    client = MQTTClient(bus_config())
    done = asyncio.Event()

    async def handler(topic: str, payload: bytes) -> None:
        asyncio.get_running_loop().call_soon(done.set)
        raise RuntimeError("listener crashed")

    client.set_message_handler(handler)
    await client.connect()

    with caplog.at_level(logging.ERROR, logger="kairos_persistor.adapters.mqtt"):
        message = SimpleNamespace(topic="tests.kairospersistor", payload=b"{}")
        client._on_message(client._client, None, message)  # type: ignore[arg-type]
        await asyncio.wait_for(done.wait(), timeout=1.0)
        await asyncio.sleep(0.05)

    assert "MQTT message handler failed" in caplog.text
    await client.disconnect()


@pytest.mark.asyncio
async def test_rejected_publish_raises(paho):
    paho.options["rc"] = {"publish": mqtt.MQTT_ERR_NO_CONN}
    client = MQTTClient(bus_config())
    await client.connect()

    with pytest.raises(MQTTConnectionError):
        client.publish("tests.kairospersistor/replies", b"{}")

    await client.disconnect()


@pytest.mark.asyncio
async def test_rejected_subscribe_raises(paho):
    paho.options["rc"] = {"subscribe": mqtt.MQTT_ERR_NO_CONN}
    client = MQTTClient(bus_config())
    await client.connect()

    with pytest.raises(MQTTConnectionError):
        client.subscribe("tests.kairospersistor")

    await client.disconnect()


def test_operations_before_connect_raise():
    client = MQTTClient(bus_config())

    with pytest.raises(RuntimeError):
        client.publish("tests.kairospersistor/replies", b"{}")
    with pytest.raises(RuntimeError):
        client.subscribe("tests.kairospersistor")


@pytest.mark.asyncio
async def test_disconnect_stops_network_loop(paho):
    paho.options["disconnect_rc"] = 7
    client = MQTTClient(bus_config())
    await client.connect()

    await client.disconnect()

    assert paho.calls["loop_running"] is False
    await client.disconnect()


@pytest.mark.asyncio
async def test_refused_connection_raises(paho):
    paho.options["connack"] = 5
    client = MQTTClient(bus_config())

    with pytest.raises(MQTTConnectionError, match="rc=5"):
        await client.connect()

    assert paho.calls["loop_running"] is False
