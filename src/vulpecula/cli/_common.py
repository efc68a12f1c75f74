"""Shared wiring for CLI commands."""
from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from vulpecula.adapter import ChatAdapter
from vulpecula.catalog import ModelCatalog
from vulpecula.config import EngineConfig
from vulpecula.credentials import (
    API_KEY_ENV,
    CredentialProvider,
    EnvCredentials,
    StoreCredentials,
)
from vulpecula.errors import ConfigurationError, TransportError
from vulpecula.providers.openrouter import OpenRouterAdapter
from vulpecula.session import ChatSession
from vulpecula.store import JsonFileStore


def load_config() -> EngineConfig:
    try:
        return EngineConfig.from_env()
    except ConfigurationError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)


def open_store(config: EngineConfig) -> JsonFileStore:
    return JsonFileStore(Path(config.store_path).expanduser())


def credentials_for(store: JsonFileStore) -> CredentialProvider:
    """Environment key wins; otherwise the key saved with ``set-key``."""
    if os.environ.get(API_KEY_ENV):
        return EnvCredentials()
    return StoreCredentials(store)


def make_adapter(config: EngineConfig, credentials: CredentialProvider) -> ChatAdapter:
    return OpenRouterAdapter(
        credentials.get_api_key() or "",
        base_url=config.base_url,
        referer=config.referer,
        app_title=config.app_title,
        timeout=config.timeout,
    )


def build_session(config: EngineConfig, *, refresh: bool = True) -> ChatSession:
    """Wire a :class:`ChatSession` from configuration, fetching the catalog."""
    store = open_store(config)
    credentials = credentials_for(store)
    session = ChatSession(
        make_adapter(config, credentials),
        credentials,
        ModelCatalog(),
        store=store,
        config=config,
    )
    if refresh:
        try:
            session.refresh_catalog()
        except TransportError as exc:
            click.echo(f"Warning: could not fetch model list: {exc}", err=True)
    return session
