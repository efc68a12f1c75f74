"""Chat session: the explicit owner of one conversation and its settings."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from vulpecula.adapter import ChatAdapter
from vulpecula.catalog import ModelCatalog
from vulpecula.catalog.types import ModelDescriptor
from vulpecula.config import EngineConfig
from vulpecula.controller import StreamingSessionController, TurnResult
from vulpecula.cost import ChatStats, summarize
from vulpecula.credentials import CredentialProvider
from vulpecula.directives import add_commands_to_system_message, commands_prompt
from vulpecula.errors import ValidationError
from vulpecula.events import EventEmitter, Notifier, RenameSuggestedEvent, ThreadCreateEvent, TopicSetEvent
from vulpecula.export import conversation_to_markdown
from vulpecula.recent import RecentModels
from vulpecula.store import KeyValueStore, MemoryStore
from vulpecula.types.config import AbortController
from vulpecula.types.enums import Role
from vulpecula.types.messages import FileExcerpt, Message

logger = logging.getLogger(__name__)

MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0


@dataclass
class Conversation:
    """Ordered messages of one chat plus its metadata."""

    id: str | None = None
    title: str = "New Chat"
    topic: str | None = None
    thread: str | None = None
    messages: list[Message] = field(default_factory=list)

    @property
    def streaming_message(self) -> Message | None:
        """The single message currently being streamed, if any."""
        for message in self.messages:
            if message.streaming:
                return message
        return None

    def models_used(self) -> list[str]:
        seen: list[str] = []
        for message in self.messages:
            if message.model and message.model not in seen:
                seen.append(message.model)
        return seen


class ChatSession:
    """Owns a conversation, the selected model and temperature, and a controller.

    Directive events addressed to this chat (rename, topic, thread) are
    applied to the conversation as they are emitted.
    """

    def __init__(
        self,
        adapter: ChatAdapter,
        credentials: CredentialProvider,
        catalog: ModelCatalog,
        *,
        store: KeyValueStore | None = None,
        emitter: Notifier | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.adapter = adapter
        self.store = store if store is not None else MemoryStore()
        self.emitter = emitter if emitter is not None else EventEmitter()
        self.recent = RecentModels(self.store)
        self.controller = StreamingSessionController(
            adapter,
            credentials,
            catalog,
            emitter=self.emitter,
            config=self.config,
        )
        self.conversation = Conversation()
        self.temperature = self.config.temperature
        recent = self.recent.ids()
        self.model = recent[0] if recent else self.config.model
        self._abort: AbortController | None = None

        if isinstance(self.emitter, EventEmitter):
            self.emitter.subscribe(RenameSuggestedEvent, self._on_rename)
            self.emitter.subscribe(TopicSetEvent, self._on_topic)
            self.emitter.subscribe(ThreadCreateEvent, self._on_thread)
        self._reset_messages()

    @property
    def catalog(self) -> ModelCatalog:
        return self.controller.catalog

    # --- Turns ---

    def send(
        self,
        content: str,
        files: Sequence[FileExcerpt] = (),
        **callbacks: Any,
    ) -> TurnResult:
        """Send a user message and stream the assistant reply.

        *callbacks* are passed through to the controller (``on_token``,
        ``on_usage``, ``on_state``).
        """
        self._abort = AbortController()
        try:
            return self.controller.run_turn(
                self.conversation,
                content,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.config.max_tokens,
                files=files,
                abort_signal=self._abort.signal,
                **callbacks,
            )
        finally:
            self._abort = None

    def abort(self, reason: str | None = None) -> bool:
        """Abort the turn in flight. Returns False when nothing is running."""
        if self._abort is None:
            return False
        self._abort.abort(reason or "Aborted by user")
        return True

    # --- Settings ---

    def set_model(self, model_id: str) -> None:
        if model_id not in self.catalog:
            raise ValidationError(f"Unknown model: {model_id}")
        self.model = model_id
        self.recent.touch(model_id)
        logger.debug("Model set to %s", model_id)

    def set_temperature(self, value: float) -> None:
        if not MIN_TEMPERATURE <= value <= MAX_TEMPERATURE:
            raise ValidationError(
                f"Temperature must be between {MIN_TEMPERATURE} and {MAX_TEMPERATURE}, got {value}"
            )
        self.temperature = value

    # --- Catalog ---

    def refresh_catalog(self) -> ModelCatalog:
        """Fetch the provider listing and replace the catalog wholesale."""
        self.controller.catalog = self.catalog.refresh(self.adapter.list_models())
        return self.controller.catalog

    def ranked_models(self) -> list[ModelDescriptor]:
        return self.catalog.ranked(self.recent.ids())

    # --- Conversation ---

    def stats(self) -> ChatStats:
        return summarize(self.conversation.messages, self.controller.calculator)

    def clear(self) -> None:
        """Start a fresh conversation."""
        if self.conversation.streaming_message is not None:
            raise ValidationError("Cannot clear while a reply is streaming")
        self.conversation = Conversation()
        self._reset_messages()

    def load(self, messages: Iterable[Message | dict[str, Any]], chat_id: str | None = None) -> None:
        """Replace the conversation with stored messages."""
        loaded = [
            m if isinstance(m, Message) else Message.from_dict(m, default_model=self.model)
            for m in messages
        ]
        for message in loaded:
            message.streaming = False
        self.conversation = Conversation(id=chat_id, messages=loaded)
        if not any(m.role == Role.SYSTEM for m in loaded):
            self._reset_messages(keep=loaded)

    def export_markdown(self, title: str | None = None) -> str:
        return conversation_to_markdown(
            self.conversation,
            stats=self.stats(),
            model=self.model,
            temperature=self.temperature,
            title=title,
        )

    def _reset_messages(self, keep: Sequence[Message] = ()) -> None:
        system = self.config.system_prompt
        if self.config.enable_directives:
            system = add_commands_to_system_message(system) if system else commands_prompt().strip()
        messages = [Message.system(system)] if system else []
        self.conversation.messages = messages + list(keep)

    # --- Directive handlers ---

    def _on_rename(self, event: RenameSuggestedEvent) -> None:
        if event.chat_id == self.conversation.id:
            self.conversation.title = event.new_name

    def _on_topic(self, event: TopicSetEvent) -> None:
        if event.chat_id == self.conversation.id:
            self.conversation.topic = event.topic

    def _on_thread(self, event: ThreadCreateEvent) -> None:
        if event.chat_id == self.conversation.id:
            self.conversation.thread = event.name
