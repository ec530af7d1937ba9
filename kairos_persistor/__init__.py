"""Message-bus persistence service for the KairosDB time series database."""

__version__ = "0.1.0"
