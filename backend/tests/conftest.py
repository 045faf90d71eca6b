"""
Shared fixtures for the test suite.

Key design decisions:
- Uses respx to mock the upstream completion API and the proxy (no real HTTP).
- Builds Settings directly so tests never depend on the local .env.
"""
import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from jedi_gpt.config import Settings
from jedi_gpt.main import create_app

UPSTREAM_ENDPOINT = "https://jedi-test.openai.azure.com"
UPSTREAM_URL = (
    f"{UPSTREAM_ENDPOINT}/openai/deployments/gpt-4o-jedi/chat/completions"
    "?api-version=2024-06-01-preview"
)
PROXY_URL = "http://jedi-proxy.test"


def completion_body(*replies: str) -> dict:
    """A chat-completion response with one choice per reply."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [
            {
                "index": i,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": reply},
            }
            for i, reply in enumerate(replies)
        ],
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        endpoint=UPSTREAM_ENDPOINT + "/",
        model_name="gpt-4o",
        deployment="gpt-4o-jedi",
        api_key="test-key-123",
    )


# ── respx mock setup ──


@pytest.fixture
def upstream():
    """Intercept calls to the completion API. Tests set the response per case."""
    with respx.mock(assert_all_called=False) as router:
        router.post(UPSTREAM_URL, name="completions").mock(
            return_value=httpx.Response(200, json=completion_body("Patience you must have."))
        )
        yield router


@pytest.fixture
def proxy_api():
    """Intercept calls the chat client makes to the proxy."""
    with respx.mock(base_url=PROXY_URL, assert_all_called=False) as router:
        router.post("/api/jedi", name="jedi").mock(
            return_value=httpx.Response(200, json={"reply": "Patience you must have."})
        )
        yield router


# ── App ──


@pytest.fixture
def client(settings, upstream):
    """TestClient with the lifespan running, so the upstream client is open."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client
