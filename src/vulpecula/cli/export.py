"""CLI command: vulpecula export -- render a saved chat as Markdown."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from vulpecula.cli import _common
from vulpecula.errors import VulpeculaError


@click.command()
@click.argument("history", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False),
              help="Write to this file instead of stdout")
@click.option("--title", default=None, help="Title for the front matter")
def export(history: str, output: str | None, title: str | None) -> None:
    """Export a chat history JSON file as Markdown.

    HISTORY is either a list of stored messages or an object with
    ``messages`` (and optionally ``id``, ``title``, ``model`` and
    ``temperature``).
    """
    try:
        data = json.loads(Path(history).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        click.echo(f"Cannot read {history}: {exc}", err=True)
        sys.exit(1)

    if isinstance(data, list):
        data = {"messages": data}
    if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
        click.echo(f"Invalid history file: {history}", err=True)
        sys.exit(1)

    config = _common.load_config()
    session = _common.build_session(config, refresh=False)
    try:
        if data.get("model"):
            session.model = str(data["model"])
        if data.get("temperature") is not None:
            session.set_temperature(float(data["temperature"]))
        session.load(data["messages"], chat_id=data.get("id"))
    except (VulpeculaError, KeyError, ValueError) as exc:
        click.echo(f"Invalid history file: {exc}", err=True)
        sys.exit(1)
    finally:
        session.adapter.close()

    markdown = session.export_markdown(title=title or data.get("title"))
    if output:
        Path(output).write_text(markdown, encoding="utf-8")
        click.echo(f"Exported {len(data['messages'])} message(s) to {output}")
    else:
        click.echo(markdown)
