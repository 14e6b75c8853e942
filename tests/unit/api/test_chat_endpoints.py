# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""End-to-end chat page flows: page action -> proxy -> fake backend -> rendered panel."""

import json
from unittest import TestCase

import httpx
from fastapi.testclient import TestClient

from chatrelay.main import create_app
from chatrelay.models.config import RelayConfig


class ChatEndpointsTest(TestCase):
    def setUp(self):
        self.backend_requests: list[httpx.Request] = []
        self.backend_reply = httpx.Response(200, json={"response": "4"})
        self.backend_error: Exception | None = None

        def backend(request: httpx.Request) -> httpx.Response:
            self.backend_requests.append(request)
            if self.backend_error is not None:
                raise self.backend_error
            return self.backend_reply

        self.app = create_app(
            config=RelayConfig(backend_url="http://backend.test", title="Test Chat"),
            backend_transport=httpx.MockTransport(backend),
        )
        self.client = TestClient(self.app)

    def test_page_renders_empty_session(self):
        r = self.client.get("/")
        self.assertEqual(r.status_code, 200)
        self.assertIn("text/html", r.headers["content-type"])
        self.assertIn("<header>Test Chat</header>", r.text)
        self.assertIn("Welcome to the AI Chatbot!", r.text)

    def test_message_round_trip(self):
        r = self.client.post("/api/chat/message", json={"input": "2+2"})

        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertTrue(body["ok"])
        self.assertEqual(
            [(m["role"], m["content"]) for m in body["state"]["messages"]],
            [("user", "2+2"), ("assistant", "4")],
        )
        self.assertFalse(body["state"]["loading"])
        self.assertEqual(body["state"]["input"], "")
        self.assertIn("<p>4</p>", body["html"])
        self.assertEqual(json.loads(self.backend_requests[0].content), {"prompt": "2+2"})

        page = self.client.get("/").text
        self.assertIn("<p>2+2</p>", page)
        self.assertNotIn("Welcome to the AI Chatbot!", page)

    def test_markdown_and_tools_in_reply(self):
        self.backend_reply = httpx.Response(
            200,
            json={
                "response": "| a | b |\n|---|---|\n| 1 | 2 |",
                "tools": [{"name": "table_tool", "description": "Builds tables"}],
            },
        )
        body = self.client.post("/api/chat/message", json={"input": "table"}).json()

        self.assertIn("<table>", body["html"])
        self.assertIn(">table_tool</button>", body["html"])
        self.assertIn(">Builds tables</span>", body["html"])
        tools = body["state"]["messages"][-1]["tools"]
        self.assertEqual(
            tools,
            [
                {
                    "name": "table_tool",
                    "description": "Builds tables",
                    "data": {"name": "table_tool", "description": "Builds tables"},
                }
            ],
        )

    def test_unreachable_backend_shows_apology(self):
        self.backend_error = httpx.ConnectError("down")

        body = self.client.post("/api/chat/message", json={"input": "2+2"}).json()

        self.assertTrue(body["ok"])
        self.assertEqual(
            body["state"]["messages"][-1]["content"],
            "Sorry, I encountered an error. Please try again.",
        )
        self.assertFalse(body["state"]["loading"])

        logs = self.client.get("/api/debug/proxy_logs").json()
        self.assertEqual(
            [entry["request"]["url"] for entry in logs],
            ["http://backend.test/prompt", "/api/prompt"],
        )
        self.assertEqual(logs[1]["response"]["status_code"], 500)

    def test_backend_error_inside_json_is_shown_as_reply(self):
        self.backend_reply = httpx.Response(500, json={"message": "model crashed"})
        body = self.client.post("/api/chat/message", json={"input": "hi"}).json()
        self.assertEqual(body["state"]["messages"][-1]["content"], "model crashed")

    def test_blank_message_is_rejected(self):
        body = self.client.post("/api/chat/message", json={"input": "   "}).json()
        self.assertFalse(body["ok"])
        self.assertEqual(body["state"]["messages"], [])
        self.assertEqual(self.backend_requests, [])

    def test_non_string_text_is_a_validation_error(self):
        r = self.client.post("/api/chat/message", json={"input": ["a"]})
        self.assertEqual(r.status_code, 422)

    def test_instructions_flow(self):
        self.backend_reply = httpx.Response(200, json={"message": "Instructions stored"})

        toggled = self.client.post("/api/chat/instructions/toggle", json={}).json()
        self.assertTrue(toggled["ok"])
        self.assertTrue(toggled["state"]["show_instructions"])
        self.assertIn("instructions-input", toggled["html"])

        body = self.client.post(
            "/api/chat/instructions", json={"instructions": " Answer briefly "}
        ).json()

        self.assertTrue(body["ok"])
        self.assertEqual(str(self.backend_requests[0].url), "http://backend.test/instructions")
        self.assertEqual(
            json.loads(self.backend_requests[0].content), {"instructions": "Answer briefly"}
        )
        self.assertEqual(body["state"]["messages"][-1]["content"], "Instructions stored")
        self.assertFalse(body["state"]["show_instructions"])
        self.assertEqual(body["state"]["instructions"], "")

    def test_toggle_keeps_message_draft(self):
        body = self.client.post(
            "/api/chat/instructions/toggle", json={"input": "half typed"}
        ).json()
        self.assertEqual(body["state"]["input"], "half typed")
        self.assertIn('value="half typed"', body["html"])

    def test_state_snapshot(self):
        self.client.post("/api/chat/message", json={"input": "hello"})
        state = self.client.get("/api/chat").json()
        self.assertEqual(len(state["messages"]), 2)
        self.assertEqual(state["messages"][0]["role"], "user")
        self.assertIn("timestamp", state["messages"][0])
        self.assertFalse(state["loading"])
        self.assertFalse(state["show_instructions"])
