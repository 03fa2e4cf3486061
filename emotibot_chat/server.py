"""
FastAPI server for the EmotiBot Chat service.

This module implements a thin HTTP display surface over a conversation store:
endpoints to type, toggle voice and submit, plus a Server-Sent Events stream
of conversation state for live rendering.
"""

import asyncio
import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from .classifier import style_for
from .client import ChatClient
from .config import Settings, configure_logging, get_settings
from .models import ConversationState
from .speech import EspeakSpeaker
from .store import ConversationStore


# API Request/Response Schemas
class InputUpdate(BaseModel):
    """Payload for input updates."""

    text: str = Field(..., description="The new pending input text")


class VoiceUpdate(BaseModel):
    """Payload for voice toggle requests."""

    enabled: bool = Field(..., description="Whether replies should be spoken")


class StateView(ConversationState):
    """Conversation state as rendered by display surfaces."""

    color: str = Field(..., description="Display color for the current mood")


class SubmitResponse(BaseModel):
    """Response model for submit requests."""

    accepted: bool = Field(..., description="Whether a request was sent")
    state: StateView


def render_state(state: ConversationState) -> StateView:
    """Attach the mood color to a state snapshot."""
    return StateView(**state.model_dump(), color=style_for(state.mood).color)


def build_store(settings: Settings) -> ConversationStore:
    """Create a conversation store wired to the remote API and espeak."""
    return ConversationStore(
        ChatClient(settings),
        EspeakSpeaker(),
        speaker_label=settings.speaker_label,
        language=settings.language,
        voice_enabled=settings.voice_enabled,
    )


def create_app(store: ConversationStore) -> FastAPI:
    """
    Create a FastAPI application with the given conversation store.

    Args:
        store: The ConversationStore instance to use for the application

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        yield
        await store.aclose()

    app = FastAPI(
        title="EmotiBot Chat",
        description="A mood-aware chat front-end with HTTP and SSE support",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "emotibot-chat"}

    @app.get("/state")
    async def get_state() -> StateView:
        """Get the current conversation state."""
        return render_state(await store.read())

    @app.put("/input")
    async def update_input(update: InputUpdate) -> StateView:
        """Replace the pending input text."""
        return render_state(await store.set_input(update.text))

    @app.put("/voice")
    async def update_voice(update: VoiceUpdate) -> StateView:
        """Turn spoken replies on or off."""
        return render_state(await store.set_voice_enabled(update.enabled))

    @app.post("/submit")
    async def submit() -> SubmitResponse:
        """
        Submit the pending input.

        Returns as soon as the request is sent; follow /state/stream for
        the reply.

        Returns:
            Whether a request was sent, and the state right after submitting
        """
        task = await store.submit()
        state = await store.read()
        return SubmitResponse(accepted=task is not None, state=render_state(state))

    @app.get("/state/stream")
    async def stream_state() -> StreamingResponse:
        """
        Stream conversation state via Server-Sent Events.

        The current state is sent immediately upon connection, followed by
        the state after every transition.

        Returns:
            StreamingResponse with text/event-stream content type
        """

        async def event_generator() -> AsyncGenerator[str, None]:
            """Generate SSE events for state updates."""
            try:
                async with store.stream() as state_stream:
                    async for state in state_stream:
                        data = render_state(state).model_dump_json()
                        yield f"data: {data}\n\n"
            except asyncio.CancelledError:
                # Client disconnected
                pass
            except Exception as e:
                error_data = json.dumps({"error": str(e)})
                yield f"event: error\ndata: {error_data}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Headers": "*",
            },
        )

    return app


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(build_store(settings)),
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
