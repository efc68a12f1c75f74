"""Streaming session controller: one request/response exchange per turn."""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from vulpecula._frames import FrameDecoder
from vulpecula.adapter import ChatAdapter
from vulpecula.catalog import ModelCatalog
from vulpecula.config import EngineConfig
from vulpecula.cost import CostCalculator, UsageTracker, count_input_chars
from vulpecula.credentials import CredentialProvider, require_api_key
from vulpecula.directives import DirectiveParseResult, dispatch_directives, parse_directives
from vulpecula.errors import (
    AbortError,
    AuthError,
    ValidationError,
    VulpeculaError,
)
from vulpecula.events import (
    EventEmitter,
    Notifier,
    TokenEvent,
    TurnCompleteEvent,
    TurnErrorEvent,
    TurnStateChangedEvent,
    UsageEvent,
)
from vulpecula.throttle import TokenThrottle
from vulpecula.types.config import AbortSignal
from vulpecula.types.enums import FrameEventType, TurnState
from vulpecula.types.messages import FileExcerpt, Message
from vulpecula.types.request import ChatRequest
from vulpecula.types.streaming import FrameEvent
from vulpecula.types.usage import CostRecord, UsageRecord

if TYPE_CHECKING:
    from vulpecula.session import Conversation

logger = logging.getLogger(__name__)

TokenCallback = Callable[[str], None]
UsageCallback = Callable[[UsageRecord], None]
StateCallback = Callable[[TurnState], None]


@dataclass
class TurnResult:
    """Outcome of a completed turn."""

    state: TurnState
    user_message: Message
    assistant_message: Message
    text: str
    parse: DirectiveParseResult
    usage: UsageRecord
    cost: CostRecord


def _error_kind(exc: BaseException) -> str:
    if isinstance(exc, AuthError):
        return "auth"
    if isinstance(exc, AbortError):
        return "abort"
    if isinstance(exc, ValidationError):
        return "validation"
    if not isinstance(exc, VulpeculaError):
        return "internal"
    return "transport"


class _Turn:
    """Mutable bookkeeping for the turn in flight."""

    def __init__(
        self,
        assistant: Message,
        tracker: UsageTracker,
        on_token: TokenCallback | None,
        on_usage: UsageCallback | None,
        interval: float,
    ) -> None:
        self.assistant = assistant
        self.tracker = tracker
        self.on_usage = on_usage
        self.parts: list[str] = []
        self.throttle: TokenThrottle | None = None
        self.on_token = on_token
        if on_token is not None and interval > 0:
            self.throttle = TokenThrottle(on_token, interval)

    @property
    def text(self) -> str:
        return "".join(self.parts)

    def deliver(self, fragment: str) -> None:
        if self.throttle is not None:
            self.throttle.push(fragment)
        elif self.on_token is not None:
            self.on_token(fragment)

    def flush(self) -> None:
        if self.throttle is not None:
            self.throttle.flush()


class StreamingSessionController:
    """Runs a single turn against a chat adapter.

    The controller owns the placeholder assistant message for the duration of
    the turn: it is the only writer of that message's content while its
    ``streaming`` flag is set.
    """

    def __init__(
        self,
        adapter: ChatAdapter,
        credentials: CredentialProvider,
        catalog: ModelCatalog,
        *,
        emitter: Notifier | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.adapter = adapter
        self.credentials = credentials
        self.emitter = emitter or EventEmitter()
        self.config = config or EngineConfig()
        self.calculator = CostCalculator(catalog)
        self.state = TurnState.IDLE
        self._on_state: StateCallback | None = None

    @property
    def catalog(self) -> ModelCatalog:
        return self.calculator.catalog

    @catalog.setter
    def catalog(self, catalog: ModelCatalog) -> None:
        self.calculator.catalog = catalog

    # --- Public API ---

    def run_turn(
        self,
        conversation: Conversation,
        content: str,
        *,
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        files: Sequence[FileExcerpt] = (),
        on_token: TokenCallback | None = None,
        on_usage: UsageCallback | None = None,
        on_state: StateCallback | None = None,
        abort_signal: AbortSignal | None = None,
    ) -> TurnResult:
        """Send *content* and stream the reply into *conversation*.

        Raises :class:`AuthError`, :class:`ValidationError`,
        :class:`TransportError` or :class:`AbortError`; in every case the
        assistant message keeps whatever text had already streamed.
        """
        self.state = TurnState.IDLE
        self._on_state = on_state

        try:
            self._validate(conversation, content)
        except VulpeculaError as exc:
            self._fail(None, exc)
            raise

        self._transition(TurnState.SENDING)
        user = Message.user(content, model=model, files=files)
        history = [m.to_wire() for m in conversation.messages if m.content] + [user.to_wire()]
        assistant = Message.assistant(model=model, streaming=True)
        conversation.messages.append(user)
        conversation.messages.append(assistant)

        descriptor = self.catalog.get(model)
        streaming = descriptor is None or descriptor.supports_streaming
        request = ChatRequest(
            model=model,
            messages=tuple(history),
            temperature=temperature,
            max_tokens=max_tokens,
            stream=streaming,
        )
        turn = _Turn(
            assistant,
            UsageTracker(count_input_chars(history)),
            on_token,
            on_usage,
            self.config.token_interval,
        )
        logger.debug("Turn started: model=%s stream=%s messages=%d", model, streaming, len(history))

        try:
            self._check_abort(abort_signal)
            if streaming:
                self._stream(request, turn, abort_signal)
            else:
                self._complete(request, turn)
            return self._finalize(conversation, user, turn)
        except VulpeculaError as exc:
            self._fail(assistant, exc)
            turn.flush()
            raise
        except KeyboardInterrupt as exc:
            error = AbortError("Turn interrupted", cause=exc)
            self._fail(assistant, error)
            turn.flush()
            raise error from exc
        except Exception as exc:
            # Raised by a callback or listener; the turn still ends errored.
            self._fail(assistant, exc)
            raise

    # --- Exchange ---

    def _stream(self, request: ChatRequest, turn: _Turn, abort_signal: AbortSignal | None) -> None:
        chunks = self.adapter.stream(request)
        decoder = FrameDecoder()
        try:
            for chunk in chunks:
                # The first chunk confirms the connection.
                if self.state == TurnState.SENDING:
                    self._transition(TurnState.STREAMING)
                for event in decoder.feed(chunk):
                    self._handle_event(event, turn)
                self._check_abort(abort_signal)
                if decoder.done:
                    break
            else:
                if self.state == TurnState.SENDING:
                    self._transition(TurnState.STREAMING)
                for event in decoder.flush():
                    self._handle_event(event, turn)
        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()
        turn.flush()
        if decoder.skipped_frames:
            logger.info("Stream finished with %d skipped frame(s)", decoder.skipped_frames)

    def _complete(self, request: ChatRequest, turn: _Turn) -> None:
        response = self.adapter.complete(request)
        if response.usage is not None:
            turn.tracker.record_snapshot(response.usage)
        self._handle_event(FrameEvent.token(response.text), turn)
        turn.flush()

    def _handle_event(self, event: FrameEvent, turn: _Turn) -> None:
        if event.type == FrameEventType.TOKEN:
            usage = turn.tracker.record_fragment()
            fragment = event.fragment or ""
            if fragment:
                turn.parts.append(fragment)
                turn.assistant.content += fragment
                turn.deliver(fragment)
                self.emitter.emit(TokenEvent(text=fragment))
            if not turn.tracker.has_authoritative and turn.on_usage is not None:
                turn.on_usage(usage)
        elif event.type == FrameEventType.USAGE and event.usage is not None:
            usage = turn.tracker.record_snapshot(event.usage)
            if turn.on_usage is not None:
                turn.on_usage(usage)
            self.emitter.emit(UsageEvent(usage=usage))

    # --- Finalization ---

    def _finalize(self, conversation: Conversation, user: Message, turn: _Turn) -> TurnResult:
        self._transition(TurnState.FINALIZING)
        assistant = turn.assistant
        text = turn.text

        usage = turn.tracker.current
        cost = self.calculator.cost_for(assistant.model, usage)

        if self.config.enable_directives:
            parse = parse_directives(text)
        else:
            parse = DirectiveParseResult(directives=(), visible_text=text, rename=None, raw_text=text)

        assistant.content = parse.visible_text
        assistant.usage = usage
        assistant.cost = cost.total_cost
        if parse.directives or parse.rename:
            dispatch_directives(parse, conversation.id, self.emitter)

        assistant.streaming = False
        self._transition(TurnState.COMPLETE)
        self.emitter.emit(TurnCompleteEvent(
            message_id=assistant.id,
            text=assistant.content,
            usage=usage,
            cost=cost,
        ))
        logger.info(
            "Turn complete: model=%s tokens=%d/%d cost=%.6f%s",
            assistant.model,
            usage.prompt_tokens,
            usage.completion_tokens,
            cost.total_cost or 0.0,
            "" if usage.authoritative else " (estimated)",
        )
        return TurnResult(
            state=self.state,
            user_message=user,
            assistant_message=assistant,
            text=text,
            parse=parse,
            usage=usage,
            cost=cost,
        )

    # --- State handling ---

    def _validate(self, conversation: Conversation, content: str) -> None:
        require_api_key(self.credentials, self.config.key_prefix)
        if not content or not content.strip():
            raise ValidationError("Cannot send an empty message")
        if conversation.streaming_message is not None:
            raise ValidationError("Another reply is still streaming")

    def _check_abort(self, abort_signal: AbortSignal | None) -> None:
        if abort_signal is not None and abort_signal.aborted:
            raise AbortError(abort_signal.reason or "Turn aborted")

    def _transition(self, state: TurnState) -> None:
        previous, self.state = self.state, state
        logger.debug("Turn state %s -> %s", previous, state)
        self.emitter.emit(TurnStateChangedEvent(previous=previous, state=state))
        if self._on_state is not None:
            self._on_state(state)

    def _fail(self, assistant: Message | None, exc: Exception) -> None:
        """Close the turn as errored.

        The assistant message is released before any callback runs, so a
        raising callback cannot leave it streaming.
        """
        if assistant is not None:
            assistant.error = str(exc) or type(exc).__name__
            assistant.streaming = False
        self._transition(TurnState.ERRORED)
        kind = _error_kind(exc)
        self.emitter.emit(TurnErrorEvent(
            message_id=assistant.id if assistant is not None else "",
            error=str(exc),
            kind=kind,
        ))
        logger.warning("Turn failed (%s): %s", kind, exc)
