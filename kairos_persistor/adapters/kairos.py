"""KairosDB adapter providing the HTTP request helper."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

from .. import constants
from ..config import KairosConfig

LOGGER = logging.getLogger(__name__)


class KairosUnavailableError(RuntimeError):
    """Raised when a request cannot be delivered to KairosDB."""


@dataclass(slots=True, frozen=True)
class KairosResponse:
    status: int
    reason: str
    body: bytes = b""

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid UTF-8 JSON.
        """
        return json.loads(self.body.decode("utf-8"))


class KairosClient:
    """Non-blocking client for the KairosDB REST interface.

    A single session is kept for the lifetime of the client so connections
    are reused through aiohttp's keep-alive.
    """

    def __init__(
        self,
        config: KairosConfig,
        *,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.config = config
        self._base_url = config.url.rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None

    async def start(self) -> None:
        await self._ensure_session()
        LOGGER.info("KairosDB client targeting %s", self._base_url)

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    async def request(
        self, method: str, path: str, payload: Optional[Any] = None
    ) -> KairosResponse:
        """Send one request and return status, reason phrase and raw body.

        Args:
            method: HTTP method name.
            path: Absolute request path, e.g. ``/api/v1/version``.
            payload: JSON-serialisable body; ``None`` sends no body.

        Raises:
            KairosUnavailableError: If the connection fails or times out.
        """

        session = await self._ensure_session()
        url = f"{self._base_url}{path}"

        data: Optional[bytes] = None
        headers: dict[str, str] = {}
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = constants.JSON_CONTENT_TYPE
            headers["Content-Length"] = str(len(data))

        LOGGER.debug("%s %s (%d bytes)", method, url, len(data) if data else 0)

        try:
            async with session.request(
                method, url, data=data, headers=headers
            ) as response:
                body = await response.read()
                return KairosResponse(
                    status=response.status,
                    reason=response.reason or "",
                    body=body,
                )
        except asyncio.TimeoutError as exc:
            raise KairosUnavailableError(
                f"request to {url} timed out"
            ) from exc
        except aiohttp.ClientError as exc:
            raise KairosUnavailableError(str(exc) or exc.__class__.__name__) from exc

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            total = self.config.request_timeout_seconds or None
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=total),
                connector=aiohttp.TCPConnector(ssl=False),
            )
            self._owns_session = True
        return self._session
