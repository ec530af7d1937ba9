"""Protocol definitions for command handlers and the backend transport."""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from .models import Command, CommandResult


@runtime_checkable
class CommandHandler(Protocol):
    """Handles one action and reports the outcome as a result."""

    async def handle(self, command: Command) -> CommandResult:
        """Execute the command; failures are returned, not raised."""
        ...


class KairosTransport(Protocol):
    """Minimal contract the handlers need from the backend HTTP client."""

    async def request(
        self, method: str, path: str, payload: Optional[Any] = None
    ) -> "KairosResponseLike":
        """Issue one request and return the raw response.

        Raises:
            KairosUnavailableError: If the backend cannot be reached.
        """
        ...


class KairosResponseLike(Protocol):
    status: int
    reason: str
    body: bytes

    def json(self) -> Any: ...
