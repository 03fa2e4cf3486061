"""
End-to-end tests for the EmotiBot Chat API endpoints.

These tests drive the HTTP display surface against a conversation store whose
chat endpoint is simulated with httpx.MockTransport.
"""

import asyncio
import contextlib
import json
import time

import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx_sse import aconnect_sse

from emotibot_chat.classifier import style_for
from emotibot_chat.client import ChatClient
from emotibot_chat.config import Settings
from emotibot_chat.models import Mood
from emotibot_chat.server import create_app, render_state
from emotibot_chat.speech import NullSpeaker
from emotibot_chat.store import ConversationStore


def chat_endpoint(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": " hello "}}]})


def wait_for_idle(client: TestClient, timeout: float = 5.0) -> dict:
    """Poll the state endpoint until the in-flight request has finished."""
    start = time.time()
    while time.time() - start < timeout:
        state = client.get("/state").json()
        if not state["is_loading"]:
            return state
        time.sleep(0.02)
    assert False, "Request did not complete in time"


# MARK: - Sync


class TestAPISync:
    """Integration tests covering the complete application flow using HTTP
    synchronous request/response flow."""

    def setup_method(self):
        """Set up a fresh app with a new conversation store for each test."""
        settings = Settings(_env_file=None, api_key="test-key", api_url="https://chat.test/v1")
        http = httpx.AsyncClient(transport=httpx.MockTransport(chat_endpoint))
        self.store = ConversationStore(
            ChatClient(settings, http_client=http), NullSpeaker(), speaker_label="Sage"
        )
        self.app = create_app(self.store)

    def test_health(self):
        with TestClient(self.app) as client:
            response = client.get("/")
            assert response.status_code == 200
            assert response.json() == {"status": "ok", "service": "emotibot-chat"}

    def test_complete_workflow(self):
        """Test the complete workflow: get -> type -> submit -> reply."""
        with TestClient(self.app) as client:
            # 1. Initial state
            initial = client.get("/state")
            assert initial.status_code == 200
            state = initial.json()
            assert state["mood"] == "undefined"
            assert state["color"] == style_for(Mood.UNDEFINED).color
            assert state["is_loading"] is False
            assert state["voice_enabled"] is True

            # 2. Type a message
            typed = client.put("/input", json={"text": "how are you, sad friend?"})
            assert typed.status_code == 200
            assert typed.json()["input"] == "how are you, sad friend?"

            # 3. Submit it; input is cleared and mood set right away
            submitted = client.post("/submit")
            assert submitted.status_code == 200
            result = submitted.json()
            assert result["accepted"] is True
            assert result["state"]["input"] == ""
            assert result["state"]["mood"] == "wonder"
            assert result["state"]["color"] == style_for(Mood.WONDER).color

            # 4. The reply arrives
            final = wait_for_idle(client)
            assert final["response"] == "Sage: hello"
            assert final["mood"] == "wonder"

    def test_submit_empty_input(self):
        with TestClient(self.app) as client:
            before = client.get("/state").json()
            response = client.post("/submit")
            assert response.status_code == 200
            assert response.json()["accepted"] is False
            assert response.json()["state"] == before

    def test_toggle_voice(self):
        with TestClient(self.app) as client:
            response = client.put("/voice", json={"enabled": False})
            assert response.status_code == 200
            assert response.json()["voice_enabled"] is False
            assert client.get("/state").json()["voice_enabled"] is False

    def test_invalid_payloads(self):
        with TestClient(self.app) as client:
            assert client.put("/input", json={}).status_code == 422
            assert client.put("/voice", json={"enabled": "maybe"}).status_code == 422


class TestRenderState:
    """Tests for the state view shared by the HTTP and SSE endpoints."""

    async def test_render_includes_color(self):
        settings = Settings(_env_file=None, api_key="test-key")
        http = httpx.AsyncClient(transport=httpx.MockTransport(chat_endpoint))
        store = ConversationStore(ChatClient(settings, http_client=http), NullSpeaker())
        await store.set_input("I love it")
        await (await store.submit())

        view = render_state(await store.read())
        assert view.mood == Mood.CLARITY
        assert view.color == style_for(Mood.CLARITY).color
        assert view.model_dump()["response"] == "Sage: hello"


# MARK: - Streaming


async def slow_chat_endpoint(request: httpx.Request) -> httpx.Response:
    await asyncio.sleep(0.2)
    return httpx.Response(200, json={"choices": [{"message": {"content": "hello"}}]})


def make_slow_app() -> FastAPI:
    settings = Settings(_env_file=None, api_key="test-key", api_url="https://chat.test/v1")
    http = httpx.AsyncClient(transport=httpx.MockTransport(slow_chat_endpoint))
    store = ConversationStore(
        ChatClient(settings, http_client=http), NullSpeaker(), speaker_label="Sage"
    )
    return create_app(store)


class TestAPIStream:
    """Integration tests covering the complete application flow using SSE."""

    async def test_streaming_api(self, live_server):
        """A stream consumer sees the initial, loading and answered states."""
        base_url = live_server(make_slow_app())

        async with httpx.AsyncClient(
            base_url=base_url, timeout=httpx.Timeout(5.0, read=None)
        ) as client:
            received: list[dict] = []
            got_initial_state = asyncio.Event()

            async def consume() -> None:
                async with aconnect_sse(client, "GET", "/state/stream") as es:
                    assert es.response.status_code == 200
                    content_type = es.response.headers.get("content-type", "")
                    assert content_type.startswith("text/event-stream")

                    async for sse in es.aiter_sse():
                        if sse.event == "error":
                            assert False, f"SSE error event: {sse.data}"

                        payload = json.loads(sse.data)
                        received.append(payload)

                        if len(received) == 1:
                            got_initial_state.set()

                        if payload["response"]:
                            break

            consumer_task = asyncio.create_task(consume())

            try:
                await asyncio.wait_for(got_initial_state.wait(), timeout=3.0)
            except TimeoutError:
                consumer_task.cancel()
                with contextlib.suppress(Exception):
                    await consumer_task
                assert False, "Consumer did not receive initial event in time"

            resp1 = await client.put("/input", json={"text": "I feel sad"})
            assert resp1.status_code == 200
            resp2 = await client.post("/submit")
            assert resp2.status_code == 200
            assert resp2.json()["accepted"] is True

            try:
                await asyncio.wait_for(consumer_task, timeout=3.0)
            except TimeoutError:
                consumer_task.cancel()
                with contextlib.suppress(Exception):
                    await consumer_task
                assert False, f"Streaming test timed out. Received: {received}"

            # Initial snapshot, then loading, then the answer
            initial = received[0]
            assert initial["mood"] == "undefined"
            assert initial["is_loading"] is False
            assert initial["color"] == style_for(Mood.UNDEFINED).color

            loading = [i for i, s in enumerate(received) if s["is_loading"]]
            assert loading, f"No loading snapshot in {received}"
            assert received[loading[0]]["mood"] == "sorrow"
            assert received[loading[0]]["input"] == ""

            final = received[-1]
            assert loading[0] < len(received) - 1
            assert final["is_loading"] is False
            assert final["response"] == "Sage: hello"
            assert final["color"] == style_for(Mood.SORROW).color
