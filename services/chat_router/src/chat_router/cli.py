"""Command line tools for the chat router."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from .groups import GroupRegistry
from .history import HistoryStore, JsonFileBackend

logger = logging.getLogger(__name__)

app = typer.Typer(help="Chat router service and history tools.")


@app.callback()
def main_callback() -> None:
    """Root callback, a sub-command is required."""


@app.command(name="serve")
def serve(  # pragma: no cover - runs a server
    host: str | None = typer.Option(None, "--host", help="Bind address (HOST)."),
    port: int | None = typer.Option(None, "--port", min=1, max=65535, help="Bind port (PORT)."),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes."),
) -> None:
    """Run the chat router with uvicorn."""

    import uvicorn

    from .config import get_settings

    settings = get_settings()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s - %(message)s")
    uvicorn.run(
        "chat_router.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@app.command(name="history")
def show_history(
    history_file: Path = typer.Option(
        Path("chatHistory.json"),
        "--file",
        help="History file to read (HISTORY_FILE).",
    ),
    viewer: str | None = typer.Option(
        None,
        "--viewer",
        help="Only show messages this nickname can see. Group messages are hidden offline.",
    ),
) -> None:
    """Print stored history as JSON."""

    store = HistoryStore(JsonFileBackend(history_file))
    store.load()
    if viewer is None:
        messages = store.messages()
    else:
        # Groups live in memory only, so no viewer is a member offline.
        messages = store.filter_for(viewer, GroupRegistry())
    typer.echo(json.dumps([message.to_wire() for message in messages], ensure_ascii=False, indent=2))


@app.command(name="clear-history")
def clear_history(
    history_file: Path = typer.Option(
        Path("chatHistory.json"),
        "--file",
        help="History file to clear (HISTORY_FILE).",
    ),
) -> None:
    """Rewrite the history file as an empty array."""

    store = HistoryStore(JsonFileBackend(history_file))
    store.load()
    removed = len(store)
    if not store.clear():
        logger.error("History file %s could not be written", history_file)
        raise typer.Exit(code=1)
    typer.echo(f"Removed {removed} message(s) from {history_file}")


def main() -> None:
    """Entry point for python -m chat_router.cli."""

    app()


if __name__ == "__main__":  # pragma: no cover - manual run
    main()
