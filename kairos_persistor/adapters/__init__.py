"""Adapter modules for external integrations."""

from .kairos import KairosClient, KairosResponse, KairosUnavailableError
from .mqtt import MQTTClient, MQTTConnectionError

__all__ = [
    "KairosClient",
    "KairosResponse",
    "KairosUnavailableError",
    "MQTTClient",
    "MQTTConnectionError",
]
