"""chathub CLI — run the server and poke at the REST API.

Usage:
    chathub serve                                  # Run the API + WebSocket server
    chathub register alice s3cret-pw               # Create an account
    chathub login alice s3cret-pw                  # Print an access token
    chathub users                                  # Everyone you can chat with
    chathub conversations                          # Your conversations
    chathub messages <conversation-id> --limit 20  # Recent history
    chathub send <conversation-id> "hello"         # Send over REST

Authenticated commands read the token from --token or CHATHUB_TOKEN.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8080"


def _api_url() -> str:
    return os.environ.get("CHATHUB_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the chathub backend."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when a loop is already running (e.g. CliRunner
    invoked from inside an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


def _require_token(token: Optional[str]) -> str:
    tok = token or os.environ.get("CHATHUB_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set CHATHUB_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def _check(r: httpx.Response) -> None:
    """Exit with the API's error detail on a non-2xx response."""
    if r.is_success:
        return
    try:
        detail = r.json().get("detail", r.text)
    except ValueError:
        detail = r.text
    click.secho(f"Error {r.status_code}: {detail}", fg="red", err=True)
    sys.exit(1)


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print rows as fixed-width columns: (key, header, width)."""
    header = "  ".join(title.ljust(width) for _, title, width in columns)
    click.secho(header, bold=True)
    for row in rows:
        click.echo(
            "  ".join(
                str(row.get(key) or "")[:width].ljust(width)
                for key, _, width in columns
            )
        )


token_option = click.option(
    "--token", default=None, help="Access token (default: $CHATHUB_TOKEN)"
)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="chathub")
def main():
    """chathub — real-time chat backend."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: CHATHUB_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: CHATHUB_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP + WebSocket server."""
    import uvicorn

    from chathub.config import settings

    uvicorn.run(
        "chathub.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command()
@click.argument("username")
@click.argument("password")
@click.option("--picture", default="", help="Profile picture URL")
def register(username: str, password: str, picture: str):
    """Create a user account."""
    _run(_register_impl(username, password, picture))


async def _register_impl(username: str, password: str, picture: str):
    async with _client() as c:
        r = await c.post(
            "/api/users/register",
            json={"username": username, "password": password, "profilePicture": picture},
        )
        _check(r)
        user = r.json()
        click.secho(f"Registered {user['username']} ({user['id']})", fg="green")


@main.command()
@click.argument("username")
@click.argument("password")
def login(username: str, password: str):
    """Log in and print an access token."""
    _run(_login_impl(username, password))


async def _login_impl(username: str, password: str):
    async with _client() as c:
        r = await c.post(
            "/api/users/login", json={"username": username, "password": password}
        )
        _check(r)
        click.echo(r.json()["token"])


@main.command()
@token_option
def users(token: Optional[str]):
    """List users you can start a conversation with."""
    _run(_users_impl(_require_token(token)))


async def _users_impl(token: str):
    async with _client(token) as c:
        r = await c.get("/api/users")
        _check(r)
        rows = r.json()

    if not rows:
        click.echo("No other users yet.")
        return
    _print_table(rows, [("id", "ID", 36), ("username", "USERNAME", 24)])


@main.command()
@token_option
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def conversations(token: Optional[str], as_json: bool):
    """List your conversations with their latest message."""
    _run(_conversations_impl(_require_token(token), as_json))


async def _conversations_impl(token: str, as_json: bool):
    async with _client(token) as c:
        r = await c.get("/api/users/conversations")
        _check(r)
        convs = r.json()

    if as_json:
        click.echo(_pretty_json(convs))
        return
    if not convs:
        click.echo("No conversations.")
        return

    rows = [
        {
            "id": conv["id"],
            "with": (conv.get("recipient") or {}).get("username", "—"),
            "latest": (conv.get("latestMessage") or {}).get("text", ""),
        }
        for conv in convs
    ]
    _print_table(rows, [("id", "ID", 36), ("with", "WITH", 20), ("latest", "LATEST", 40)])


@main.command()
@click.argument("conversation_id")
@token_option
@click.option("--page", default=0, show_default=True, help="Messages to skip")
@click.option("--limit", default=20, show_default=True, help="Messages to show")
def messages(conversation_id: str, token: Optional[str], page: int, limit: int):
    """Show recent messages in a conversation (oldest of the page first)."""
    _run(_messages_impl(conversation_id, _require_token(token), page, limit))


async def _messages_impl(conversation_id: str, token: str, page: int, limit: int):
    async with _client(token) as c:
        r = await c.get(
            f"/api/conversations/{conversation_id}/messages/pagination",
            params={"page": page, "limit": limit},
        )
        _check(r)
        msgs = r.json()

    if not msgs:
        click.echo("No messages.")
        return
    # The API returns newest first; print in reading order.
    for m in reversed(msgs):
        stamp = str(m["createAt"])[:19].replace("T", " ")
        click.echo(f"[{stamp}] {m['sender'][:8]}: {m['text']}")


@main.command()
@click.argument("conversation_id")
@click.argument("text")
@token_option
def send(conversation_id: str, text: str, token: Optional[str]):
    """Send a message over REST (stored, not pushed live)."""
    _run(_send_impl(conversation_id, text, _require_token(token)))


async def _send_impl(conversation_id: str, text: str, token: str):
    async with _client(token) as c:
        r = await c.post(
            f"/api/conversations/{conversation_id}/messages", json={"text": text}
        )
        _check(r)
        click.secho(f"Sent {r.json()['id']}", fg="green")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
