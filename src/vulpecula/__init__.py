"""Vulpecula - streaming chat completion engine for OpenRouter-compatible APIs."""
from __future__ import annotations

__version__ = "0.1.0"

from vulpecula.catalog import ModelCatalog, normalize_listing, rank_models
from vulpecula.catalog.types import ModelDescriptor
from vulpecula.config import EngineConfig
from vulpecula.controller import StreamingSessionController, TurnResult
from vulpecula.cost import CostCalculator, calculate_cost
from vulpecula.directives import DirectiveParseResult, ParsedDirective, parse_directives
from vulpecula.errors import (
    AbortError,
    AuthError,
    ConfigurationError,
    DecodeError,
    DirectiveParseError,
    TransportError,
    ValidationError,
    VulpeculaError,
)
from vulpecula.session import ChatSession, Conversation
from vulpecula.types import CostRecord, Message, TurnState, UsageRecord

__all__ = [
    "__version__",
    "AbortError",
    "AuthError",
    "ChatSession",
    "ConfigurationError",
    "Conversation",
    "CostCalculator",
    "CostRecord",
    "DecodeError",
    "DirectiveParseError",
    "DirectiveParseResult",
    "EngineConfig",
    "Message",
    "ModelCatalog",
    "ModelDescriptor",
    "ParsedDirective",
    "StreamingSessionController",
    "TransportError",
    "TurnResult",
    "TurnState",
    "UsageRecord",
    "ValidationError",
    "VulpeculaError",
    "calculate_cost",
    "normalize_listing",
    "parse_directives",
    "rank_models",
]
