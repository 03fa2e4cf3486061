"""
Conversation state and request orchestration for EmotiBot Chat.

This module provides the in-memory conversation store: it owns the single
observable conversation state, drives at most one chat request at a time and
streams state snapshots to any number of observers.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from .classifier import classify, style_for
from .client import ChatClient
from .errors import ChatError, TransportError
from .models import ConversationState
from .speech import Speaker

logger = logging.getLogger(__name__)


class ConversationStore:
    """
    Observable conversation state with a single in-flight chat request.

    All mutations happen on the event loop that owns the store and under one
    asyncio condition, so observers only ever see complete transitions. The
    chat request runs as its own task and re-enters the condition to apply
    its result.
    """

    def __init__(
        self,
        client: ChatClient,
        speaker: Speaker,
        *,
        speaker_label: str = "Sage",
        language: str = "en-US",
        voice_enabled: bool = True,
    ) -> None:
        self._client = client
        self._speaker = speaker
        self._speaker_label = speaker_label
        self._language = language
        self._state = ConversationState(voice_enabled=voice_enabled)
        self._condition = asyncio.Condition()
        self._update_counter = 0  # Simple counter to detect updates
        self._pending: asyncio.Task[None] | None = None

    def _commit(self) -> None:
        # Caller must hold the condition
        self._update_counter += 1
        self._condition.notify_all()

    async def read(self) -> ConversationState:
        """
        Get a snapshot of the current conversation state.

        Returns:
            A copy of the state, safe to hold on to
        """
        async with self._condition:
            return self._state.model_copy()

    async def set_input(self, text: str) -> ConversationState:
        """Replace the pending input text."""
        async with self._condition:
            self._state.input = text
            self._commit()
            return self._state.model_copy()

    async def set_voice_enabled(self, enabled: bool) -> ConversationState:
        """Turn spoken replies on or off."""
        async with self._condition:
            self._state.voice_enabled = enabled
            self._commit()
            return self._state.model_copy()

    async def submit(self) -> asyncio.Task[None] | None:
        """
        Submit the pending input to the chat endpoint.

        Does nothing when the input is blank or a request is already in
        flight. Otherwise the input is captured and cleared and the mood is
        classified before this returns; the reply is applied by the returned
        task.

        Returns:
            The task running the chat request, or None if nothing was sent
        """
        async with self._condition:
            text = self._state.input.strip()
            if not text or self._state.is_loading:
                return None

            self._state.is_loading = True
            self._state.input = ""
            self._state.mood = classify(text)
            self._commit()

            logger.info(
                "Submitting message (mood=%s, length=%d)",
                self._state.mood.value,
                len(text),
            )
            self._pending = asyncio.create_task(self._exchange(text))
            return self._pending

    async def _exchange(self, text: str) -> None:
        try:
            reply = await self._client.complete(text)
        except ChatError as e:
            logger.warning("Chat request failed: %s", e.display())
            await self._fail(e)
            return
        except Exception as e:
            logger.exception("Unexpected failure during chat request")
            error_msg = str(e) if str(e) else type(e).__name__
            await self._fail(TransportError(error_msg))
            return

        async with self._condition:
            reply = reply.strip()
            self._state.is_loading = False
            self._state.response = f"{self._speaker_label}: {reply}"
            speak = self._state.voice_enabled and bool(reply)
            prosody = style_for(self._state.mood).prosody
            self._commit()

        # Speech starts after observers have the reply
        if speak:
            try:
                self._speaker.speak(reply, prosody.rate, prosody.pitch, self._language)
            except Exception as e:
                logger.warning("Speech output failed: %s", e)

    async def _fail(self, error: ChatError) -> None:
        async with self._condition:
            self._state.is_loading = False
            self._state.response = error.display()
            self._commit()

    async def aclose(self) -> None:
        """Release the chat client."""
        await self._client.aclose()

    async def wait_idle(self) -> ConversationState:
        """Wait until no request is in flight and return the state."""
        async with self._condition:
            await self._condition.wait_for(lambda: not self._state.is_loading)
            return self._state.model_copy()

    @asynccontextmanager
    async def stream(
        self,
    ) -> AsyncGenerator[AsyncGenerator[ConversationState, None], None]:
        """
        Stream conversation state snapshots to a subscriber.

        This context manager yields an async generator that produces the
        current state immediately and then the latest snapshot after each
        transition. A slow subscriber may see several transitions folded into
        one snapshot.

        Yields:
            An async generator of ConversationState snapshots
        """

        async def state_generator() -> AsyncGenerator[ConversationState, None]:
            async with self._condition:
                last_seen_counter = self._update_counter
                snapshot = self._state.model_copy()
            yield snapshot

            try:
                while True:
                    # Snapshots are yielded outside the lock
                    async with self._condition:
                        await self._condition.wait_for(
                            lambda: self._update_counter > last_seen_counter
                        )
                        last_seen_counter = self._update_counter
                        snapshot = self._state.model_copy()
                    yield snapshot

            except (asyncio.CancelledError, GeneratorExit):
                # Subscriber went away
                return

        yield state_generator()
