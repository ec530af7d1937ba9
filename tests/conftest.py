from configparser import ConfigParser
from pathlib import Path

import pytest

from kairos_persistor.config import (
    BusConfig,
    KairosConfig,
    LoggingConfig,
    PersistorConfig,
)


@pytest.fixture
def persistor_config() -> PersistorConfig:
    """Provide an in-memory configuration pointing at local test services."""
    return PersistorConfig(
        bus=BusConfig(
            address="tests.kairospersistor",
            broker_host="broker.test",
            broker_port=1883,
            username="persistor",
            password="secret",
        ),
        kairos=KairosConfig(host="127.0.0.1", port=8080),
        logging=LoggingConfig(),
        raw=ConfigParser(),
        path=Path("kairos-persistor.cfg"),
    )
