"""
HTTP-level tests for the proxy app (main.py + routes/jedi.py).

Runs the real app through FastAPI's TestClient with the completion API
mocked by respx (see conftest.py).
"""
import json

import httpx
import pytest

from jedi_gpt.config import ConfigError
from jedi_gpt.main import create_app
from jedi_gpt.services.completion import SYSTEM_PROMPT

from conftest import completion_body


class TestAskJedi:

    def test_success_returns_first_choice(self, client, upstream):
        upstream["completions"].mock(
            return_value=httpx.Response(200, json=completion_body("Do or do not.", "There is no try."))
        )

        response = client.post("/api/jedi", json={"prompt": "Should I try?"})

        assert response.status_code == 200
        assert response.json() == {"reply": "Do or do not."}

    def test_upstream_gets_exactly_two_messages(self, client, upstream):
        client.post("/api/jedi", json={"prompt": "Hello there"})

        body = json.loads(upstream["completions"].calls.last.request.content)
        assert body["messages"] == [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": "Hello there"},
        ]

    def test_upstream_401_becomes_500_with_details(self, client, upstream):
        error_body = {"error": {"code": "401", "message": "Access denied due to invalid subscription key."}}
        upstream["completions"].mock(return_value=httpx.Response(401, json=error_body))

        response = client.post("/api/jedi", json={"prompt": "Hi"})

        assert response.status_code == 500
        assert response.json() == {"error": "Error calling AOAI", "details": error_body}

    def test_network_failure_becomes_500(self, client, upstream):
        upstream["completions"].mock(side_effect=httpx.ConnectError("name resolution failed"))

        response = client.post("/api/jedi", json={"prompt": "Hi"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Error calling AOAI"
        assert "name resolution failed" in body["details"]

    def test_malformed_upstream_body_becomes_500(self, client, upstream):
        upstream["completions"].mock(return_value=httpx.Response(200, json={"choices": []}))

        response = client.post("/api/jedi", json={"prompt": "Hi"})

        assert response.status_code == 500
        assert response.json() == {"error": "Error calling AOAI", "details": {"choices": []}}

    @pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": "   "}, {"prompt": None}, {"prompt": 42}])
    def test_blank_prompt_rejected_without_upstream_call(self, client, upstream, body):
        response = client.post("/api/jedi", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Prompt is required"
        assert not upstream["completions"].called

    @pytest.mark.parametrize(
        "kwargs",
        [
            {},
            {"content": b""},
            {"content": b"null", "headers": {"Content-Type": "application/json"}},
            {"json": "Hello"},
            {"json": ["Hello"]},
            {"content": b"{not json", "headers": {"Content-Type": "application/json"}},
        ],
    )
    def test_missing_or_non_object_body_is_400(self, client, upstream, kwargs):
        response = client.post("/api/jedi", **kwargs)

        assert response.status_code == 400
        assert response.json()["error"] == "Prompt is required"
        assert "details" in response.json()
        assert not upstream["completions"].called

    def test_requests_are_independent(self, client, upstream):
        upstream["completions"].mock(
            side_effect=[
                httpx.Response(500, json={"error": "overloaded"}),
                httpx.Response(200, json=completion_body("Much to learn, you still have.")),
            ]
        )

        first = client.post("/api/jedi", json={"prompt": "One"})
        second = client.post("/api/jedi", json={"prompt": "Two"})

        assert first.status_code == 500
        assert second.status_code == 200
        assert second.json() == {"reply": "Much to learn, you still have."}


class TestAppShell:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "jedi-gpt-api"}

    def test_root_lists_endpoints(self, client):
        body = client.get("/").json()
        assert body["model"] == "gpt-4o"
        assert body["endpoints"]["jedi"] == "/api/jedi (POST)"

    def test_cors_preflight(self, client):
        response = client.options(
            "/api/jedi",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


class TestStartup:

    def test_missing_config_refuses_to_build_app(self, monkeypatch, tmp_path):
        for name in ("AOAI_ENDPOINT", "AOAI_MODEL_NAME", "AOAI_DEPLOYMENT_NAME"):
            monkeypatch.delenv(name, raising=False)
        # Empty working directory so no stray .env is picked up
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("jedi_gpt.config.load_dotenv", lambda **kwargs: False)

        with pytest.raises(ConfigError):
            create_app()
