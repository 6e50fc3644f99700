"""
Command-line interface tools for the LifeTea mood service.
"""

import asyncio
import json
from collections.abc import Coroutine
from typing import Any

import httpx
import typer
from httpx_sse import ServerSentEvent, aconnect_sse

from .models import Emotion, emoji_for

DEFAULT_BASE_URL = "http://localhost:8000"

app = typer.Typer(help="LifeTea mood CLI tools")

BaseUrlOption = typer.Option(
    DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the LifeTea mood service"
)


# MARK: - Commands


@app.command()
def classify(
    text: str = typer.Argument(..., help="Story text to classify"),
    base_url: str = BaseUrlOption,
) -> None:
    """Detect the emotion of a piece of text."""

    async def _classify() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{base_url}/classify", json={"text": text})
            response.raise_for_status()
            emotion = Emotion(response.json()["emotion"])
            print(f"{emoji_for(emotion)} {emotion.value}")

    _run_with_error_handling(_classify(), base_url)


@app.command()
def post(
    title: str = typer.Argument(..., help="Story title"),
    content: str = typer.Argument(..., help="Story content"),
    emotion: Emotion | None = typer.Option(
        None, "--emotion", "-e", help="Emotion to tag instead of the detected one"
    ),
    author: str | None = typer.Option(None, "--author", "-a", help="Author id"),
    base_url: str = BaseUrlOption,
) -> None:
    """Publish a story."""

    async def _post() -> None:
        payload: dict[str, Any] = {
            "title": title,
            "content": content,
            "emotion": emotion.value if emotion else None,
            "author_id": author,
        }
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{base_url}/posts", json=payload)
            response.raise_for_status()
            result = response.json()
            stored = result["post"]
            print(f"Posted {stored['id']} as {stored['emotion']}")
            if result["detected"] != stored["emotion"]:
                print(f"(detected: {result['detected']})")

    _run_with_error_handling(_post(), base_url)


@app.command()
def hug(
    post_id: str = typer.Argument(..., help="Post to hug"),
    base_url: str = BaseUrlOption,
) -> None:
    """Send a hug to a post."""

    async def _hug() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{base_url}/posts/{post_id}/hug")
            response.raise_for_status()
            print(f"Hugs: {response.json()['hug_count']}")

    _run_with_error_handling(_hug(), base_url)


@app.command()
def ring(
    window: int | None = typer.Option(
        None, "--window", "-w", help="Number of recent posts to consider"
    ),
    base_url: str = BaseUrlOption,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Show the community mood ring."""

    async def _ring() -> None:
        params = {"window": window} if window is not None else None
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{base_url}/mood/ring", params=params)
            response.raise_for_status()
            result = response.json()

            if json_output:
                print(json.dumps(result, indent=2))
                return

            _print_ring(result)

    _run_with_error_handling(_ring(), base_url)


@app.command()
def mood(
    author: str = typer.Argument(..., help="Author id"),
    base_url: str = BaseUrlOption,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Show an author's current vibe and mood trend."""

    async def _mood() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{base_url}/authors/{author}/mood")
            response.raise_for_status()
            result = response.json()

            if json_output:
                print(json.dumps(result, indent=2))
                return

            print(f"Current vibe: {result['current_vibe_emoji']} {result['current_vibe']}")
            stats = result["stats"]
            print(f"{stats['total_posts']} posts, {stats['total_hugs']} hugs")
            for point in result["trend"]:
                bar = "#" * point["score"]
                print(f"{point['label']}  {bar:<9} {point['emotion']}  {point['title']}")

    _run_with_error_handling(_mood(), base_url)


@app.command()
def stream(base_url: str = BaseUrlOption) -> None:
    """Stream mood ring updates in real-time."""

    async def _stream() -> None:
        print(f"Streaming from {base_url}/mood/stream... (Ctrl+C to stop)")

        async with httpx.AsyncClient(timeout=None) as client:
            async with aconnect_sse(
                client, "GET", f"{base_url}/mood/stream"
            ) as event_source:
                async for sse in event_source.aiter_sse():
                    _handle_sse_event(sse)

    _run_with_error_handling(_stream(), base_url)


@app.command()
def serve() -> None:
    """Run the LifeTea mood server."""
    from .server import main as server_main

    server_main()


def main() -> None:
    """Entry point for the lifetea console script."""
    app()


# MARK: - Private Helpers


def _print_ring(result: dict[str, Any]) -> None:
    if not result["entries"]:
        print("Not enough posts yet")
        return

    print(f"Mostly {result['dominant']} across {result['total']} posts")
    for entry in result["entries"]:
        emotion = Emotion(entry["emotion"])
        print(
            f"{emoji_for(emotion)} {emotion.value:<12} {entry['count']:>4}"
            f"  {entry['share']:.0%}"
        )


def _handle_sse_event(sse: ServerSentEvent) -> None:
    """Handle a single SSE event."""
    try:
        if sse.event == "error":
            error_data = json.loads(sse.data)
            print(f"Server error: {error_data.get('error', 'Unknown error')}")
            return

        _print_ring(json.loads(sse.data))
        print()

    except json.JSONDecodeError as e:
        print(f"Warning: Could not parse SSE data: {sse.data} - {e}")
    except (KeyError, ValueError) as e:
        print(f"Warning: Error processing mood ring: {e}")


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
