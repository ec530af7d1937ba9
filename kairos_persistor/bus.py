"""Message-bus front end: decodes command envelopes and publishes replies."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from .config import BusConfig
from .core import Command, CommandResult

LOGGER = logging.getLogger(__name__)


class EnvelopeError(ValueError):
    """Raised when a bus message cannot be turned into a command."""


class CommandDispatcher(Protocol):
    async def dispatch(self, command: Command) -> CommandResult: ...


class MQTTBusClient(Protocol):
    def subscribe(self, topic: str, qos: int = 1) -> None: ...

    def unsubscribe(self, topic: str) -> None: ...

    def publish(
        self, topic: str, payload: bytes, qos: int = 1, retain: bool = False
    ) -> None: ...

    def set_message_handler(self, handler): ...


@dataclass(slots=True)
class Envelope:
    command: Command
    reply_to: Optional[str] = None
    correlation_id: Optional[str] = None


def parse_envelope(raw_payload: bytes) -> Envelope:
    try:
        decoded = raw_payload.decode("utf-8")
        data = json.loads(decoded)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise EnvelopeError("command payload is not valid JSON") from exc

    if not isinstance(data, dict):
        raise EnvelopeError("command must be a JSON object")

    reply_to = data.get("reply_to")
    correlation_id = data.get("correlation_id")
    return Envelope(
        command=Command.from_envelope(data),
        reply_to=reply_to if isinstance(reply_to, str) and reply_to else None,
        correlation_id=str(correlation_id) if correlation_id is not None else None,
    )


class CommandBusListener:
    """Consumes command envelopes from MQTT and answers each one."""

    def __init__(
        self,
        config: BusConfig,
        mqtt: MQTTBusClient,
        dispatcher: CommandDispatcher,
    ) -> None:
        self._config = config
        self._mqtt = mqtt
        self._dispatcher = dispatcher
        self._handler_registered = False

    @property
    def address(self) -> str:
        return self._config.address

    async def start(self) -> None:
        if self._handler_registered:
            raise RuntimeError("CommandBusListener already started")

        self._mqtt.set_message_handler(self._handle_message)
        self._mqtt.subscribe(self.address, qos=self._config.qos)
        self._handler_registered = True
        LOGGER.info("Listening for commands on %s", self.address)

    async def stop(self) -> None:
        if not self._handler_registered:
            return

        try:
            self._mqtt.unsubscribe(self.address)
        except Exception as exc:  # pragma: no cover
            LOGGER.debug("Unsubscribe from %s failed: %s", self.address, exc)
        finally:
            self._mqtt.set_message_handler(None)
            self._handler_registered = False

    async def _handle_message(self, topic: str, payload: bytes) -> None:
        if topic != self.address:
            return

        LOGGER.debug("Received command on %s (%d bytes)", topic, len(payload))

        try:
            envelope = parse_envelope(payload)
        except EnvelopeError as exc:
            LOGGER.warning("Invalid command payload: %s", exc)
            self._publish_reply(CommandResult.error(str(exc)), None, None)
            return

        try:
            result = await self._dispatcher.dispatch(envelope.command)
        except Exception as exc:
            LOGGER.exception("Dispatch of %s failed", envelope.command.action)
            result = CommandResult.error(
                f"error processing {envelope.command.action}: {exc}"
            )
        self._publish_reply(result, envelope.reply_to, envelope.correlation_id)

    def _publish_reply(
        self,
        result: CommandResult,
        reply_to: Optional[str],
        correlation_id: Optional[str],
    ) -> None:
        document: Dict[str, Any] = result.as_dict()
        if correlation_id is not None:
            document["correlation_id"] = correlation_id

        topic = reply_to or self._config.reply_topic
        try:
            self._mqtt.publish(
                topic, json.dumps(document).encode("utf-8"), qos=self._config.qos
            )
        except Exception:
            LOGGER.exception("Failed to publish reply to %s", topic)
