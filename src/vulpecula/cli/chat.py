"""CLI commands: vulpecula chat / set-key."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from vulpecula.cli import _common
from vulpecula.credentials import StoreCredentials
from vulpecula.errors import AbortError, TransportError, ValidationError, VulpeculaError
from vulpecula.events import EventEmitter, NotificationEvent
from vulpecula.session import ChatSession
from vulpecula.types.messages import FileExcerpt

QUIT_COMMANDS = {"/quit", "/exit"}


def _read_files(paths: tuple[str, ...]) -> list[FileExcerpt]:
    files = []
    for raw in paths:
        path = Path(raw)
        files.append(FileExcerpt(title=path.stem, path=str(path), content=path.read_text(encoding="utf-8")))
    return files


def _turn(session: ChatSession, content: str, files: list[FileExcerpt], show_usage: bool) -> None:
    try:
        result = session.send(content, files, on_token=lambda t: click.echo(t, nl=False))
    except AbortError:
        click.echo()
        click.echo("Aborted.", err=True)
        return
    click.echo()
    if show_usage:
        marker = "" if result.usage.authoritative else "~"
        click.echo(
            f"[{result.cost.model_id or session.model}] "
            f"tokens: {marker}{result.usage.prompt_tokens} in / "
            f"{marker}{result.usage.completion_tokens} out, "
            f"cost: ${result.cost.total_cost or 0.0:.6f}",
            err=True,
        )


@click.command()
@click.argument("message", nargs=-1)
@click.option("--model", "-m", default=None, help="Model id (defaults to the most recent one)")
@click.option("--temperature", "-t", type=float, default=None, help="Sampling temperature (0.0-2.0)")
@click.option("--file", "-f", "file_paths", multiple=True, type=click.Path(exists=True, dir_okay=False),
              help="Attach a file to the first message")
@click.option("--usage/--no-usage", default=True, help="Print token usage and cost after each reply")
@click.option("--export", "export_path", default=None, type=click.Path(dir_okay=False),
              help="Write the conversation as Markdown when done")
def chat(
    message: tuple[str, ...],
    model: str | None,
    temperature: float | None,
    file_paths: tuple[str, ...],
    usage: bool,
    export_path: str | None,
) -> None:
    """Chat with a model.

    With MESSAGE, sends it and prints the streamed reply.  Without it, starts
    an interactive session; type /quit to leave.
    """
    config = _common.load_config()
    session = _common.build_session(config)
    if isinstance(session.emitter, EventEmitter):
        session.emitter.subscribe(
            NotificationEvent, lambda e: click.echo(f"\n* {e.message}", err=True)
        )

    try:
        if model:
            session.set_model(model)
        if temperature is not None:
            session.set_temperature(temperature)
    except ValidationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    files = _read_files(file_paths)
    try:
        if message:
            _turn(session, " ".join(message), files, usage)
        else:
            click.echo(f"Chatting with {session.model}. Type /quit to leave.", err=True)
            while True:
                try:
                    content = click.prompt("you", prompt_suffix="> ")
                except (EOFError, click.Abort):
                    break
                if content.strip() in QUIT_COMMANDS:
                    break
                try:
                    _turn(session, content, files, usage)
                except (ValidationError, TransportError) as exc:
                    click.echo(f"Error: {exc}", err=True)
                    continue
                files = []
    except VulpeculaError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    finally:
        if export_path:
            Path(export_path).write_text(session.export_markdown(), encoding="utf-8")
            click.echo(f"Exported to {export_path}", err=True)
        session.adapter.close()


@click.command("set-key")
@click.argument("api_key")
def set_key(api_key: str) -> None:
    """Save an OpenRouter API key to the settings store."""
    config = _common.load_config()
    credentials = StoreCredentials(_common.open_store(config), prefix=config.key_prefix)
    if not credentials.set_api_key(api_key):
        click.echo(f"Invalid API key: expected a key starting with {config.key_prefix!r}", err=True)
        sys.exit(1)
    click.echo("API key saved.")
