"""Vulpecula type definitions."""
from __future__ import annotations

from vulpecula.types.enums import DirectiveTag, FrameEventType, Role, TurnState
from vulpecula.types.usage import CostRecord, UsageRecord
from vulpecula.types.messages import FileExcerpt, Message
from vulpecula.types.streaming import ChunkPayload, FrameEvent
from vulpecula.types.request import ChatRequest
from vulpecula.types.response import CompletionResponse
from vulpecula.types.config import AbortController, AbortSignal, AdapterTimeout

__all__ = [
    # Enums
    "DirectiveTag",
    "FrameEventType",
    "Role",
    "TurnState",
    # Accounting
    "CostRecord",
    "UsageRecord",
    # Messages
    "FileExcerpt",
    "Message",
    # Request/Response
    "ChatRequest",
    "CompletionResponse",
    # Streaming
    "ChunkPayload",
    "FrameEvent",
    # Config
    "AbortController",
    "AbortSignal",
    "AdapterTimeout",
]
