"""
HTTP client for the Jedi proxy.
"""
import asyncio
import logging
import os
from typing import Any, Optional

import httpx

log = logging.getLogger("client")

DEFAULT_API_URL = "http://localhost:3000"
DEFAULT_TIMEOUT = 30.0


class ProxyError(Exception):
    """A prompt could not be answered. Carries a user-facing message plus details."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConnectivityError(ProxyError):
    """The proxy could not be reached or did not answer in time."""


class MalformedReplyError(ProxyError):
    """The proxy answered but the body had no reply."""


def default_api_url() -> str:
    return os.getenv("JEDI_API_URL") or DEFAULT_API_URL


def _stringify(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return repr(value)


class ProxyClient:
    """Async client that posts prompts to POST /api/jedi."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or default_api_url()).rstrip("/")
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self) -> "ProxyClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def ask(self, prompt: str) -> str:
        """Send a prompt and return the reply text."""
        try:
            # Deadline covers the whole request, not each network phase
            response = await asyncio.wait_for(
                self.client.post("/api/jedi", json={"prompt": prompt}),
                timeout=self.timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            log.warning(f"Proxy request timed out: {e!r}")
            raise ConnectivityError(
                "The Jedi Master took too long to answer. Try again.",
                details=str(e) or "timeout",
            ) from e
        except httpx.RequestError as e:
            log.warning(f"Proxy request failed: {e!r}")
            raise ConnectivityError(
                "Could not reach the Jedi Master. Check your connection and try again.",
                details=str(e) or repr(e),
            ) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            details = None
            if isinstance(data, dict):
                details = _stringify(data.get("details")) or _stringify(data.get("error"))
            raise ProxyError(
                "Something went wrong. Try again.",
                details=details or f"HTTP {response.status_code}",
            )

        if not isinstance(data, dict) or not isinstance(data.get("reply"), str):
            raise MalformedReplyError(
                "The Jedi Master's answer could not be understood.",
                details=_stringify(data) if data is not None else response.text,
            )
        return data["reply"]
