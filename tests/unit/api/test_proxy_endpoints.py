# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""REST contract of the same-origin proxy endpoints."""

import json
import os
from unittest import TestCase
from unittest.mock import patch

import httpx
from fastapi.testclient import TestClient

from chatrelay.main import create_app
from chatrelay.models.config import RelayConfig

PROXY_ERROR = {"error": "Failed to proxy request to Python backend"}


class FakeBackend:
    """Records requests and answers with a canned reply."""

    def __init__(self, status_code=200, payload=None, error=None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {"response": "4"}
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error(f"{self.error.__name__} from fake backend", request=request)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class ProxyEndpointTest(TestCase):
    def _client(self, backend: FakeBackend, config: RelayConfig | None = None):
        app = create_app(
            config=config or RelayConfig(backend_url="http://backend.test"),
            backend_transport=backend.transport,
        )
        return TestClient(app)

    def test_prompt_is_relayed(self):
        backend = FakeBackend(payload={"response": "4"})
        client = self._client(backend)

        r = client.post("/api/prompt", json={"prompt": "2+2"})

        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"response": "4"})
        self.assertEqual(len(backend.requests), 1)
        sent = backend.requests[0]
        self.assertEqual(sent.method, "POST")
        self.assertEqual(str(sent.url), "http://backend.test/prompt")
        self.assertEqual(sent.headers["content-type"], "application/json")
        self.assertEqual(json.loads(sent.content), {"prompt": "2+2"})

    def test_arbitrary_body_shape_is_forwarded(self):
        backend = FakeBackend(payload={"message": "ok"})
        client = self._client(backend)
        body = {"prompt": "x", "history": [{"role": "user"}], "n": 3}

        r = client.post("/api/prompt", json=body)

        self.assertEqual(r.status_code, 200)
        self.assertEqual(json.loads(backend.requests[0].content), body)

    def test_backend_error_status_is_relayed_as_success(self):
        backend = FakeBackend(status_code=503, payload={"detail": "overloaded"})
        client = self._client(backend)

        r = client.post("/api/prompt", json={"prompt": "hi"})

        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"detail": "overloaded"})

    def test_unreachable_backend(self):
        backend = FakeBackend(error=httpx.ConnectError)
        client = self._client(backend)

        r = client.post("/api/prompt", json={"prompt": "hi"})

        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.json(), PROXY_ERROR)

    def test_backend_timeout(self):
        backend = FakeBackend(error=httpx.ReadTimeout)
        r = self._client(backend).post("/api/prompt", json={"prompt": "hi"})
        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.json(), PROXY_ERROR)

    def test_backend_body_not_json(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="oops"))
        app = create_app(config=RelayConfig(), backend_transport=transport)

        r = TestClient(app).post("/api/prompt", json={"prompt": "hi"})

        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.json(), PROXY_ERROR)

    def test_inbound_body_not_json(self):
        backend = FakeBackend()
        r = self._client(backend).post(
            "/api/prompt",
            content=b"not json",
            headers={"content-type": "application/json"},
        )
        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.json(), PROXY_ERROR)
        self.assertEqual(backend.requests, [])

    def test_instructions_go_to_instructions_path(self):
        backend = FakeBackend(payload={"message": "Instructions saved"})
        client = self._client(backend)

        r = client.post("/api/instructions", json={"instructions": "Be brief"})

        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"message": "Instructions saved"})
        self.assertEqual(str(backend.requests[0].url), "http://backend.test/instructions")
        self.assertEqual(
            json.loads(backend.requests[0].content), {"instructions": "Be brief"}
        )

    def test_config_is_resolved_per_request_without_injection(self):
        backend = FakeBackend()
        client = TestClient(create_app(backend_transport=backend.transport))

        with patch.dict(os.environ, {"PYTHON_BACKEND_URL": "http://first.test"}):
            client.post("/api/prompt", json={"prompt": "a"})
        with patch.dict(os.environ, {"PYTHON_BACKEND_URL": "http://second.test:9000"}):
            client.post("/api/prompt", json={"prompt": "b"})
        client.post("/api/prompt", json={"prompt": "c"})

        self.assertEqual(
            [str(r.url) for r in backend.requests],
            [
                "http://first.test/prompt",
                "http://second.test:9000/prompt",
                "http://localhost:8000/prompt",
            ],
        )

    def test_unusable_backend_url_fails_like_an_unreachable_backend(self):
        backend = FakeBackend()
        client = TestClient(create_app(backend_transport=backend.transport))

        for bad_url in ("localhost:8000", "file:///etc/passwd"):
            with patch.dict(os.environ, {"PYTHON_BACKEND_URL": bad_url}):
                r = client.post("/api/prompt", json={"prompt": "2+2"})
            self.assertEqual(r.status_code, 500)
            self.assertEqual(r.json(), PROXY_ERROR)

            with patch.dict(os.environ, {"PYTHON_BACKEND_URL": bad_url}):
                r = client.post("/api/instructions", json={"instructions": "x"})
            self.assertEqual(r.status_code, 500)
            self.assertEqual(r.json(), PROXY_ERROR)

        self.assertEqual(backend.requests, [])
        logs = client.get("/api/debug/proxy_logs").json()
        self.assertEqual(len(logs), 4)
        self.assertIn("Invalid backend_url scheme", logs[0]["response"]["error_detail"])
        self.assertEqual(logs[0]["request"]["body"], {"prompt": "2+2"})

    def test_unusable_backend_url_surfaces_as_chat_apology(self):
        backend = FakeBackend()
        client = TestClient(create_app(backend_transport=backend.transport))

        with patch.dict(os.environ, {"PYTHON_BACKEND_URL": "localhost:8000"}):
            r = client.post("/api/chat/message", json={"input": "2+2"})

        self.assertEqual(
            r.json()["state"]["messages"][-1]["content"],
            "Sorry, I encountered an error. Please try again.",
        )

    def test_deeply_nested_backend_body(self):
        depth = 100000
        transport = httpx.MockTransport(
            lambda request: httpx.Response(
                200,
                content=("[" * depth + "]" * depth).encode(),
                headers={"content-type": "application/json"},
            )
        )
        app = create_app(config=RelayConfig(), backend_transport=transport)

        r = TestClient(app).post("/api/prompt", json={"prompt": "hi"})

        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.json(), PROXY_ERROR)

    def test_requests_are_logged_and_logs_can_be_cleared(self):
        backend = FakeBackend()
        client = self._client(backend)
        client.post("/api/prompt", json={"prompt": "2+2"})

        logs = client.get("/api/debug/proxy_logs").json()
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0]["request"]["url"], "http://backend.test/prompt")
        self.assertEqual(logs[0]["request"]["body"], {"prompt": "2+2"})
        self.assertEqual(logs[0]["response"]["body"], {"response": "4"})

        self.assertEqual(client.delete("/api/debug/proxy_logs").json(), {"status": "ok"})
        self.assertEqual(client.get("/api/debug/proxy_logs").json(), [])

    def test_health(self):
        client = self._client(FakeBackend())
        self.assertEqual(client.get("/api/health").json(), {"status": "ok"})
