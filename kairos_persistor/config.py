"""Configuration loader for kairos-persistor."""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import constants


@dataclass(slots=True)
class BusConfig:
    address: str = constants.DEFAULT_ADDRESS
    broker_host: str = constants.DEFAULT_BROKER_HOST
    broker_port: int = constants.DEFAULT_BROKER_PORT
    username: Optional[str] = None
    password: Optional[str] = None
    client_id: str = constants.DEFAULT_CLIENT_ID
    qos: int = 1

    @property
    def reply_topic(self) -> str:
        """Topic used for replies when the envelope names none."""
        return f"{self.address}/{constants.DEFAULT_REPLY_SUFFIX}"


@dataclass(slots=True)
class KairosConfig:
    host: str = constants.DEFAULT_KAIROS_HOST
    port: int = constants.DEFAULT_KAIROS_PORT
    request_timeout_seconds: float = constants.DEFAULT_REQUEST_TIMEOUT_SECONDS

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_network: bool = False


@dataclass(slots=True)
class PersistorConfig:
    bus: BusConfig
    kairos: KairosConfig
    logging: LoggingConfig
    raw: ConfigParser
    path: Path


def load_config(path: Optional[Path] = None) -> PersistorConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser()
    parser.read_dict(
        {
            "bus": {
                "address": constants.DEFAULT_ADDRESS,
                "broker_host": constants.DEFAULT_BROKER_HOST,
                "broker_port": str(constants.DEFAULT_BROKER_PORT),
                "client_id": constants.DEFAULT_CLIENT_ID,
                "qos": "1",
            },
            "kairos": {
                "host": constants.DEFAULT_KAIROS_HOST,
                "port": str(constants.DEFAULT_KAIROS_PORT),
                "request_timeout_seconds": str(
                    constants.DEFAULT_REQUEST_TIMEOUT_SECONDS
                ),
            },
            "logging": {
                "level": "INFO",
                "log_network": "false",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    broker_host_value = parser.get("bus", "broker_host")
    broker_port_value = parser.getint(
        "bus", "broker_port", fallback=constants.DEFAULT_BROKER_PORT
    )

    if ":" in broker_host_value:
        host_part, port_part = broker_host_value.rsplit(":", 1)
        try:
            parsed_port = int(port_part)
        except ValueError:
            pass
        else:
            broker_host_value = host_part
            broker_port_value = parsed_port
            parser.set("bus", "broker_host", host_part)
            parser.set("bus", "broker_port", str(parsed_port))

    address = parser.get("bus", "address").strip() or constants.DEFAULT_ADDRESS

    bus = BusConfig(
        address=address,
        broker_host=broker_host_value,
        broker_port=broker_port_value,
        username=parser.get("bus", "username", fallback=None),
        password=parser.get("bus", "password", fallback=None),
        client_id=parser.get("bus", "client_id", fallback=constants.DEFAULT_CLIENT_ID),
        qos=max(0, min(2, parser.getint("bus", "qos", fallback=1))),
    )

    try:
        timeout_value = parser.getfloat(
            "kairos",
            "request_timeout_seconds",
            fallback=constants.DEFAULT_REQUEST_TIMEOUT_SECONDS,
        )
    except ValueError:
        timeout_value = constants.DEFAULT_REQUEST_TIMEOUT_SECONDS

    kairos = KairosConfig(
        host=parser.get("kairos", "host"),
        port=parser.getint("kairos", "port", fallback=constants.DEFAULT_KAIROS_PORT),
        request_timeout_seconds=max(0.0, timeout_value),
    )

    log_path_value = parser.get("logging", "path", fallback="").strip()
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    return PersistorConfig(
        bus=bus,
        kairos=kairos,
        logging=logging_config,
        raw=parser,
        path=config_path,
    )
