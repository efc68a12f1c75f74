"""Directive mini-language embedded in assistant replies.

Models may include self-closing tags such as::

    <rename-chat newname="Trip Planning" />

to ask the host application for an action.  The extractor recognises only a
fixed vocabulary, strips the recognised markup from the visible text, and
never raises on malformed input: a malformed known tag means the reply is
shown as-is with no directives.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from xml.sax.saxutils import unescape

from vulpecula.errors import DirectiveParseError
from vulpecula.events import (
    HighlightEvent,
    NotificationEvent,
    Notifier,
    RenameSuggestedEvent,
    SearchSuggestedEvent,
    ThreadCreateEvent,
    TopicSetEvent,
)
from vulpecula.types.enums import DirectiveTag

__all__ = [
    "DirectiveParseResult",
    "ParsedDirective",
    "add_commands_to_system_message",
    "commands_prompt",
    "dispatch_directives",
    "parse_directives",
]

logger = logging.getLogger(__name__)

# Older producers emitted a bare ``<rename .../>`` tag.
LEGACY_RENAME_TAG = "rename"
_LEGACY_RENAME_ATTRS = ("newname", "name", "title")

_TAG_NAMES = sorted({t.value for t in DirectiveTag} | {LEGACY_RENAME_TAG}, key=len, reverse=True)
_NAMES = "|".join(re.escape(n) for n in _TAG_NAMES)

# Opening of a known tag: "<name" followed by whitespace, "/" or ">".
_OPEN_RE = re.compile(rf"<\s*(?P<name>{_NAMES})(?=[\s/>])")

# Closing tag of a known name; the vocabulary is self-closing only.
_CLOSE_RE = re.compile(rf"</\s*(?:{_NAMES})\s*>")

_ATTR_RE = re.compile(
    r"""
    \s+
    (?P<key>[A-Za-z_][\w.-]*)          # attribute name
    \s*=\s*
    (?:"(?P<dq>[^"<]*)"|'(?P<sq>[^'<]*)')   # quoted value
    """,
    re.VERBOSE,
)

_END_RE = re.compile(r"\s*/>")

_ENTITIES = {"&quot;": '"', "&apos;": "'"}


@dataclass(frozen=True)
class ParsedDirective:
    """A recognised directive: tag plus attributes."""

    tag: DirectiveTag
    attributes: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        return self.attributes.get(key)


@dataclass(frozen=True)
class DirectiveParseResult:
    """Outcome of scanning one reply."""

    directives: tuple[ParsedDirective, ...] = ()
    visible_text: str = ""
    rename: str | None = None
    raw_text: str = ""

    @property
    def has_rename_directive(self) -> bool:
        return any(d.tag == DirectiveTag.RENAME_CHAT for d in self.directives)


@dataclass(frozen=True)
class _Span:
    name: str
    attributes: dict[str, str]
    start: int
    end: int


def _scan_tag(text: str, start: int, name: str, pos: int) -> _Span:
    """Parse attributes and the ``/>`` terminator of a tag opened at *start*."""
    attributes: dict[str, str] = {}
    while True:
        end = _END_RE.match(text, pos)
        if end:
            return _Span(name=name, attributes=attributes, start=start, end=end.end())
        attr = _ATTR_RE.match(text, pos)
        if attr is None:
            raise DirectiveParseError(
                f"<{name}> is not a well-formed self-closing tag", position=start
            )
        key = attr.group("key")
        if key in attributes:
            raise DirectiveParseError(f"duplicate attribute {key!r} in <{name}>", position=start)
        raw = attr.group("dq") if attr.group("dq") is not None else attr.group("sq")
        attributes[key] = unescape(raw, _ENTITIES)
        pos = attr.end()


def _scan(text: str) -> list[_Span]:
    closing = _CLOSE_RE.search(text)
    if closing:
        raise DirectiveParseError("directive tags must be self-closing", position=closing.start())
    spans: list[_Span] = []
    pos = 0
    while True:
        match = _OPEN_RE.search(text, pos)
        if match is None:
            return spans
        span = _scan_tag(text, match.start(), match.group("name"), match.end())
        spans.append(span)
        pos = span.end


def _remove_spans(text: str, spans: list[_Span]) -> str:
    pieces: list[str] = []
    pos = 0
    for span in spans:
        pieces.append(text[pos:span.start])
        pos = span.end
    pieces.append(text[pos:])
    return "".join(pieces)


def parse_directives(text: str) -> DirectiveParseResult:
    """Extract directives from *text*.

    Returns the directives in order of appearance and the text with their
    markup removed and surrounding whitespace trimmed.  Text without tags, or
    with malformed directive markup, comes back unchanged with no directives.
    """
    unchanged = DirectiveParseResult(visible_text=text, raw_text=text)
    if "<" not in text or ">" not in text:
        return unchanged

    try:
        spans = _scan(text)
    except DirectiveParseError as exc:
        logger.warning("Ignoring malformed directive markup at %s: %s", exc.position, exc)
        return unchanged

    if not spans:
        return unchanged

    # Removing markup can join the surrounding text into a new tag, so strip
    # until nothing recognisable is left.
    found: list[_Span] = []
    visible = text
    while spans:
        found.extend(spans)
        visible = _remove_spans(visible, spans)
        try:
            spans = _scan(visible)
        except DirectiveParseError as exc:
            logger.warning("Leaving malformed directive markup at %s: %s", exc.position, exc)
            break

    directives: list[ParsedDirective] = []
    legacy_rename: str | None = None
    for span in found:
        if span.name == LEGACY_RENAME_TAG:
            if legacy_rename is None:
                legacy_rename = next(
                    (span.attributes[k] for k in _LEGACY_RENAME_ATTRS if span.attributes.get(k)),
                    None,
                )
            continue
        directives.append(ParsedDirective(tag=DirectiveTag(span.name), attributes=span.attributes))

    rename = next(
        (d.attributes["newname"] for d in directives
         if d.tag == DirectiveTag.RENAME_CHAT and d.attributes.get("newname")),
        None,
    )
    has_first_class = any(d.tag == DirectiveTag.RENAME_CHAT for d in directives)
    if not has_first_class and legacy_rename:
        rename = legacy_rename

    if directives:
        logger.debug("Extracted %d directive(s): %s", len(directives), [d.tag.value for d in directives])
    return DirectiveParseResult(
        directives=tuple(directives),
        visible_text=visible.strip(),
        rename=rename,
        raw_text=text,
    )


# ---------------------------------------------------------------------------
# Prompting
# ---------------------------------------------------------------------------


def commands_prompt() -> str:
    """Explain the directive language to a model."""
    return """
## XML Command System

You can use XML commands in your responses to trigger actions in the application. These commands will be parsed and removed from your response before showing it to the user.

Available commands:

1. <rename-chat newname="Suggested Title" /> - Suggest a better name for the current chat
2. <set-topic topic="Topic Name" /> - Set a topic for the current chat
3. <highlight text="Important text" /> - Highlight important text for the user
4. <search query="Search query" /> - Suggest a search query
5. <create-thread name="Thread Name" /> - Suggest creating a new thread

Example usage:
<rename-chat newname="TypeScript Project Setup" />

Here's my response to your question about TypeScript configuration...

Notes:
- Commands should be used sparingly and only when they add value
- All suggested actions require user approval
- Focus on providing helpful responses first, commands second
- Invalid XML will be ignored and shown to the user as-is
"""


def add_commands_to_system_message(system_message: str) -> str:
    return f"{system_message}\n\n{commands_prompt()}"


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def _rename_events(chat_id: str, new_name: str) -> list[object]:
    return [
        RenameSuggestedEvent(chat_id=chat_id, new_name=new_name),
        NotificationEvent(
            message=f'The AI suggested renaming this chat to: "{new_name}"',
            action="rename-chat",
            data={"chatId": chat_id, "newName": new_name},
        ),
    ]


def dispatch_directives(
    result: DirectiveParseResult, chat_id: str | None, notifier: Notifier
) -> list[object]:
    """Emit events for every actionable directive in *result*.

    Chat-scoped directives need a *chat_id*; directives missing their
    attribute are ignored.  Returns the emitted events.
    """
    events: list[object] = []
    for directive in result.directives:
        tag = directive.tag
        if tag == DirectiveTag.RENAME_CHAT:
            new_name = directive.get("newname")
            if new_name and chat_id:
                events.extend(_rename_events(chat_id, new_name))
        elif tag == DirectiveTag.SET_TOPIC:
            topic = directive.get("topic")
            if topic and chat_id:
                events.append(TopicSetEvent(chat_id=chat_id, topic=topic))
        elif tag == DirectiveTag.SEARCH:
            query = directive.get("query")
            if query:
                events.append(SearchSuggestedEvent(query=query))
        elif tag == DirectiveTag.CREATE_THREAD:
            name = directive.get("name")
            if name and chat_id:
                events.append(ThreadCreateEvent(chat_id=chat_id, name=name))
        elif tag == DirectiveTag.HIGHLIGHT:
            text = directive.get("text")
            if text:
                events.append(HighlightEvent(text=text))

    if result.rename and chat_id and not result.has_rename_directive:
        events.extend(_rename_events(chat_id, result.rename))

    for event in events:
        notifier.emit(event)
    return events
