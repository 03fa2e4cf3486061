"""
Client for the remote chat-completions endpoint.

One POST per exchange, no retries. Every failure is raised as a
:class:`~emotibot_chat.errors.ChatError` subclass.
"""

import json
import logging
from types import TracebackType

import httpx
from pydantic import BaseModel, Field, ValidationError

from .config import Settings
from .errors import (
    EmptyBodyError,
    MalformedBodyError,
    RemoteAPIError,
    TransportError,
    UnexpectedShapeError,
)
from .models import ChatMessage, ChatRequest, ChatResponse

logger = logging.getLogger(__name__)

PERSONA_PROMPT = (
    "You are Sage, a calm and poetic companion. Answer in two or three short "
    "sentences, with warmth and a touch of wonder. Never claim to be human."
)


# Wire shapes accepted from the provider


class _ReplyMessage(BaseModel):
    content: str


class _Choice(BaseModel):
    message: _ReplyMessage


class _Completion(BaseModel):
    choices: list[_Choice] = Field(..., min_length=1)


class _ErrorDetail(BaseModel):
    message: str


class _ErrorEnvelope(BaseModel):
    error: _ErrorDetail


def parse_body(raw: bytes) -> ChatResponse:
    """
    Parse a raw response body into a reply or a remote error.

    Args:
        raw: The response body as received

    Returns:
        ChatResponse carrying either the assistant text or the remote error

    Raises:
        EmptyBodyError: The body is empty
        MalformedBodyError: The body is not valid JSON
        UnexpectedShapeError: The JSON has neither a reply nor an error
    """
    if not raw.strip():
        raise EmptyBodyError("no data received")

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise MalformedBodyError(f"could not parse response: {e}") from e

    try:
        completion = _Completion.model_validate(data)
        return ChatResponse(text=completion.choices[0].message.content)
    except ValidationError:
        pass

    try:
        envelope = _ErrorEnvelope.model_validate(data)
        return ChatResponse(error=envelope.error.message)
    except ValidationError:
        pass

    raise UnexpectedShapeError("response has neither choices nor error")


class ChatClient:
    """Send a single user message to the chat endpoint and return the reply."""

    def __init__(
        self, settings: Settings, http_client: httpx.AsyncClient | None = None
    ) -> None:
        self._settings = settings
        self._owns_http = http_client is None
        if http_client is not None:
            self._http = http_client
        elif settings.timeout is not None:
            self._http = httpx.AsyncClient(timeout=settings.timeout)
        else:
            self._http = httpx.AsyncClient()

    def build_request(self, text: str) -> ChatRequest:
        """Build the outbound payload for a captured user message."""
        return ChatRequest(
            model=self._settings.model,
            messages=[
                ChatMessage(role="system", content=PERSONA_PROMPT),
                ChatMessage(role="user", content=text),
            ],
        )

    async def complete(self, text: str) -> str:
        """
        Run one chat exchange.

        Args:
            text: The captured user message

        Returns:
            The assistant's reply text, untrimmed

        Raises:
            ChatError: Any transport, parse or remote failure
        """
        if self._settings.api_key is None:
            raise TransportError("API key is not configured (set EMOTIBOT_API_KEY)")

        request = self.build_request(text)
        headers = {
            "Authorization": f"Bearer {self._settings.api_key.get_secret_value()}"
        }

        try:
            response = await self._http.post(
                self._settings.api_url, json=request.model_dump(), headers=headers
            )
        except httpx.HTTPError as e:
            error_msg = str(e) if str(e) else type(e).__name__
            raise TransportError(error_msg) from e

        logger.debug("Chat endpoint answered HTTP %s", response.status_code)

        parsed = parse_body(response.content)
        if parsed.error is not None:
            raise RemoteAPIError(parsed.error)
        return parsed.text or ""

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
