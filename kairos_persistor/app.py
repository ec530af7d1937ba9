"""Main application entry-point for kairos-persistor."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .adapters import KairosClient, MQTTClient, MQTTConnectionError
from .bus import CommandBusListener
from .commands import CommandRouter
from .config import PersistorConfig, load_config
from .logging import configure_logging

LOGGER = logging.getLogger(__name__)


class KairosPersistorApp:
    """Coordinates application startup and shutdown.

    The Kairos client and MQTT client can be injected for testing; otherwise
    they are built from configuration when the services start.
    """

    def __init__(
        self,
        config: Optional[PersistorConfig] = None,
        *,
        kairos_client: Optional[KairosClient] = None,
        mqtt_client: Optional[MQTTClient] = None,
    ) -> None:
        self._config = config or load_config()
        self._kairos_client = kairos_client
        self._mqtt_client = mqtt_client
        self._router: Optional[CommandRouter] = None
        self._listener: Optional[CommandBusListener] = None
        self._shutdown_event: Optional[asyncio.Event] = None

    @property
    def router(self) -> Optional[CommandRouter]:
        return self._router

    async def run(self) -> None:
        """Start services and block until :meth:`request_shutdown` is called."""

        self._shutdown_event = asyncio.Event()

        LOGGER.info("kairos-persistor starting with config: %s", self._config.path)
        try:
            await self._start_services()
            await self._shutdown_event.wait()
        except asyncio.CancelledError:
            LOGGER.info("kairos-persistor received shutdown signal")
            raise
        finally:
            await self._stop_services()

    def request_shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    @classmethod
    def start(cls, config: Optional[PersistorConfig] = None) -> int:
        instance = cls(config=config)
        configure_logging(instance._config.logging)
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("kairos-persistor received shutdown signal")
        except MQTTConnectionError as exc:
            LOGGER.error("Unable to reach message bus: %s", exc)
            return 1
        return 0

    async def _start_services(self) -> None:
        if self._kairos_client is None:
            self._kairos_client = KairosClient(self._config.kairos)
        await self._kairos_client.start()

        self._router = CommandRouter.for_client(self._kairos_client)

        if self._mqtt_client is None:
            self._mqtt_client = MQTTClient(self._config.bus)
        await self._mqtt_client.connect()

        self._listener = CommandBusListener(
            self._config.bus, self._mqtt_client, self._router
        )
        await self._listener.start()
        LOGGER.info(
            "kairos-persistor ready: %d actions on %s",
            len(self._router.actions),
            self._config.bus.address,
        )

    async def _stop_services(self) -> None:
        if self._listener is not None:
            await self._listener.stop()
            self._listener = None

        if self._mqtt_client is not None:
            try:
                await self._mqtt_client.disconnect()
            except Exception as exc:
                LOGGER.warning("Error disconnecting from MQTT broker: %s", exc)

        if self._kairos_client is not None:
            await self._kairos_client.close()

        LOGGER.info("kairos-persistor stopped")
