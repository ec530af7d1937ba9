"""Constants used across the kairos-persistor package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "kairos-persistor"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / f".{APP_NAME}" / DEFAULT_CONFIG_FILENAME

DEFAULT_ADDRESS = "jonnywray.kairospersistor"
DEFAULT_REPLY_SUFFIX = "replies"

DEFAULT_BROKER_HOST = "localhost"
DEFAULT_BROKER_PORT = 1883
DEFAULT_CLIENT_ID = APP_NAME

DEFAULT_KAIROS_HOST = "localhost"
DEFAULT_KAIROS_PORT = 8080
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

JSON_CONTENT_TYPE = "application/json"
