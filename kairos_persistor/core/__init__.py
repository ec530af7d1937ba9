"""Core primitives for kairos-persistor."""

from .models import STATUS_ERROR, STATUS_OK, Command, CommandResult
from .protocols import CommandHandler, KairosResponseLike, KairosTransport

__all__ = [
    "Command",
    "CommandHandler",
    "CommandResult",
    "KairosResponseLike",
    "KairosTransport",
    "STATUS_ERROR",
    "STATUS_OK",
]
