"""
Command-line interface tools for EmotiBot Chat.
"""

import asyncio
import json
from collections.abc import Coroutine
from typing import Any

import httpx
import typer
from httpx_sse import ServerSentEvent, aconnect_sse

from .classifier import classify, style_for
from .config import configure_logging, get_settings
from .models import ConversationState
from .server import build_store

DEFAULT_BASE_URL = "http://localhost:8000"
EXIT_WORDS = {"quit", "exit"}

app = typer.Typer(help="EmotiBot Chat CLI tools")


# MARK: - CLI Entry Points


def cli_chat() -> None:
    """Entry point for the emotibot-chat command."""
    typer.run(chat)


# MARK: - Commands


@app.command("classify")
def classify_text(
    text: str = typer.Argument(..., help="The text to classify"),
) -> None:
    """Print the mood detected in a piece of text."""
    mood = classify(text)
    print(f"{mood.value} ({style_for(mood).color})")


@app.command()
def chat(
    voice: bool = typer.Option(True, "--voice/--no-voice", help="Speak replies aloud"),
) -> None:
    """Chat with the remote model from the terminal."""
    settings = get_settings()
    configure_logging(settings.log_level)

    async def _chat() -> None:
        store = build_store(settings)
        await store.set_voice_enabled(voice)
        try:
            while True:
                line = await asyncio.to_thread(_prompt)
                if line is None or line.strip().lower() in EXIT_WORDS:
                    break

                await store.set_input(line)
                task = await store.submit()
                if task is None:
                    continue
                await task
                _print_state(await store.read())
        finally:
            await store.aclose()

    try:
        asyncio.run(_chat())
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)


@app.command()
def ask(
    text: str = typer.Argument(..., help="The message to send"),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the EmotiBot service"
    ),
) -> None:
    """Send one message through a running EmotiBot service and print the reply."""

    async def _ask() -> None:
        async with httpx.AsyncClient(timeout=None) as client:
            async with aconnect_sse(
                client, "GET", f"{base_url}/state/stream"
            ) as event_source:
                response = await client.put(f"{base_url}/input", json={"text": text})
                response.raise_for_status()
                response = await client.post(f"{base_url}/submit")
                response.raise_for_status()
                if not response.json()["accepted"]:
                    print("Not sent: the service is busy or the message is empty")
                    return

                # The first event is the state from before our submit
                seen_loading = False
                async for sse in event_source.aiter_sse():
                    state = _parse_state_event(sse)
                    if state is None:
                        continue
                    if state.is_loading:
                        seen_loading = True
                    elif seen_loading:
                        _print_state(state)
                        return

    _run_with_error_handling(_ask(), base_url)


@app.command()
def stream(
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the EmotiBot service"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Stream conversation state updates in real-time."""

    async def _stream() -> None:
        print(f"Streaming from {base_url}/state/stream... (Ctrl+C to stop)")

        async with httpx.AsyncClient(timeout=None) as client:
            async with aconnect_sse(
                client, "GET", f"{base_url}/state/stream"
            ) as event_source:
                async for sse in event_source.aiter_sse():
                    if json_output:
                        print(sse.data)
                        continue
                    state = _parse_state_event(sse)
                    if state is not None:
                        print(_format_state_line(state))

    _run_with_error_handling(_stream(), base_url)


# MARK: - Private Helpers


def _prompt() -> str | None:
    try:
        return input("> ")
    except EOFError:
        return None


def _print_state(state: ConversationState) -> None:
    """Print the response in the color of the current mood."""
    color = style_for(state.mood).color
    typer.echo(typer.style(state.response, fg=_hex_to_rgb(color)))


def _hex_to_rgb(color: str) -> tuple[int, int, int]:
    value = color.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def _format_state_line(state: ConversationState) -> str:
    """Format a state snapshot as a single status line."""
    status = "loading" if state.is_loading else "idle"
    line = f"[{status}] mood={state.mood.value}"
    if state.response and not state.is_loading:
        line += f" > {state.response}"
    return line


def _parse_state_event(sse: ServerSentEvent) -> ConversationState | None:
    """Parse a single SSE event, reporting anything that is not a state."""
    try:
        if sse.event == "error":
            error_data = json.loads(sse.data)
            print(f"Server error: {error_data.get('error', 'Unknown error')}")
            return None

        raw_data = json.loads(sse.data)
        if "error" in raw_data:
            print(f"Server error: {raw_data['error']}")
            return None

        return ConversationState.model_validate(raw_data)

    except json.JSONDecodeError as e:
        print(f"Warning: Could not parse SSE data: {sse.data} - {e}")
    except Exception as e:
        print(f"Warning: Error processing state data: {e}")
    return None


def _run_with_error_handling(coro: Coroutine[Any, Any, Any], base_url: str) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except httpx.ConnectError:
        print(f"Error: Could not connect to {base_url}")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        print(f"Error: HTTP {e.response.status_code}")
        raise typer.Exit(1)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
