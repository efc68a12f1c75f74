"""CLI command: vulpecula models -- list the model catalog."""

from __future__ import annotations

import json
import sys

import click

from vulpecula.cli import _common
from vulpecula.errors import VulpeculaError

CAPABILITIES = ("vision", "tools", "streaming", "free")


@click.command()
@click.option("--provider", default=None, help="Only models from this provider (e.g. openai)")
@click.option("--capability", type=click.Choice(CAPABILITIES), default=None, help="Required capability")
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON")
@click.option("--limit", type=int, default=None, help="Show at most this many models")
def models(provider: str | None, capability: str | None, as_json: bool, limit: int | None) -> None:
    """List available models, recently used first, then by price."""
    config = _common.load_config()
    session = _common.build_session(config, refresh=False)
    try:
        session.refresh_catalog()
    except VulpeculaError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    finally:
        session.adapter.close()

    allowed = {m.id for m in session.catalog.filter(provider=provider, capability=capability)}
    ranked = [m for m in session.ranked_models() if m.id in allowed]
    if limit is not None:
        ranked = ranked[:limit]

    if as_json:
        click.echo(json.dumps([
            {
                "id": m.id,
                "name": m.display_name,
                "context_window": m.context_window,
                "prompt_price": m.prompt_price,
                "completion_price": m.completion_price,
                "vision": m.supports_vision,
                "tools": m.supports_tools,
                "streaming": m.supports_streaming,
            }
            for m in ranked
        ], indent=2))
        return

    if not ranked:
        click.echo("No models found.")
        return
    recent = set(session.recent.ids())
    for m in ranked:
        flag = "*" if m.id in recent else " "
        price = "free" if m.is_free else f"${m.prompt_price:g}/${m.completion_price:g} per 1M"
        click.echo(f"{flag} {m.id:<48} {m.context_window:>8}  {price}")
