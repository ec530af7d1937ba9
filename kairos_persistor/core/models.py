"""Domain models for commands and their results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

STATUS_OK = "ok"
STATUS_ERROR = "error"


@dataclass(slots=True, frozen=True)
class Command:
    """A single inbound command.

    The payload is the whole envelope object, so handlers read their
    action-specific field (``query``, ``datapoints``, ``metric_name``) from it.
    """

    action: Optional[str]
    payload: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_envelope(cls, envelope: Mapping[str, Any]) -> "Command":
        action = envelope.get("action")
        if action is not None and not isinstance(action, str):
            action = str(action)
        return cls(action=action, payload=envelope)


@dataclass(slots=True, frozen=True)
class CommandResult:
    status: str
    message: Optional[str] = None
    body: Optional[Dict[str, Any]] = None

    @classmethod
    def ok(cls, body: Optional[Mapping[str, Any]] = None) -> "CommandResult":
        return cls(status=STATUS_OK, body=dict(body) if body else None)

    @classmethod
    def error(cls, message: str) -> "CommandResult":
        return cls(status=STATUS_ERROR, message=message)

    def as_dict(self) -> Dict[str, Any]:
        """Flatten into the reply document sent back over the bus."""
        document: Dict[str, Any] = {"status": self.status}
        if self.message is not None:
            document["message"] = self.message
        for key, value in (self.body or {}).items():
            document.setdefault(key, value)
        return document
