"""
Upstream chat-completion client.
"""
import logging
from typing import Any, List, Optional

import httpx

from jedi_gpt.config import Settings
from jedi_gpt.models.chat import ChatCompletionPayload, UpstreamMessage

log = logging.getLogger("completion")

SYSTEM_PROMPT = "You are a wise Jedi Master. Respond with Star Wars lore and wisdom."


class UpstreamError(Exception):
    """The completion API could not produce a reply."""

    def __init__(self, message: str, details: Any = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.details = details if details is not None else message
        self.status_code = status_code


def build_messages(prompt: Any) -> List[UpstreamMessage]:
    """The fixed system instruction followed by the user's prompt, verbatim."""
    return [
        UpstreamMessage(role="system", content=SYSTEM_PROMPT),
        UpstreamMessage(role="user", content=prompt),
    ]


def extract_reply(data: Any) -> str:
    """Pull the first choice's message text out of a completion body."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise UpstreamError("Malformed completion response", details=data)
    if not isinstance(content, str):
        raise UpstreamError("Malformed completion response", details=data)
    return content


def _response_details(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class CompletionClient:
    """Async HTTP client for an Azure-OpenAI-style chat-completion deployment."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        headers = {"Content-Type": "application/json"}
        if settings.api_key:
            headers["api-key"] = settings.api_key
        self.client = httpx.AsyncClient(
            headers=headers,
            timeout=settings.timeout,
            transport=transport,
        )

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self) -> "CompletionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def build_payload(self, prompt: Any) -> dict:
        payload = ChatCompletionPayload(
            messages=build_messages(prompt),
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
        )
        return payload.model_dump(exclude_none=True)

    async def complete(self, prompt: Any) -> str:
        """Send one prompt upstream and return the reply text. No retries."""
        url = self.settings.completions_url
        log.info(f"Calling URL: {url}")

        try:
            response = await self.client.post(url, json=self.build_payload(prompt))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            details = _response_details(e.response)
            log.error(f"Error response status: {e.response.status_code}")
            log.error(f"Error response data: {details}")
            raise UpstreamError(
                f"API error: {e.response.status_code}",
                details=details,
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            log.error(f"Request error calling completion API: {e!r}")
            raise UpstreamError(f"Request error: {e}", details=str(e) or repr(e)) from e

        try:
            data = response.json()
        except ValueError as e:
            log.error(f"Completion API returned non-JSON body: {response.text[:200]!r}")
            raise UpstreamError("Malformed completion response", details=response.text) from e

        return extract_reply(data)
