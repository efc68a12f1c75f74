"""Tests for the directive extractor and dispatcher."""
from __future__ import annotations

import logging

import pytest

from vulpecula.directives import (
    add_commands_to_system_message,
    commands_prompt,
    dispatch_directives,
    parse_directives,
)
from vulpecula.events import (
    EventEmitter,
    HighlightEvent,
    NotificationEvent,
    RenameSuggestedEvent,
    SearchSuggestedEvent,
    ThreadCreateEvent,
    TopicSetEvent,
)
from vulpecula.types.enums import DirectiveTag


class _Recorder:
    def __init__(self) -> None:
        self.events: list[object] = []

    def emit(self, event: object) -> None:
        self.events.append(event)


# ---------------------------------------------------------------------------
# parse_directives
# ---------------------------------------------------------------------------


def test_rename_example() -> None:
    result = parse_directives('<rename-chat newname="Trip Planning" />\nHere is your itinerary.')
    assert len(result.directives) == 1
    directive = result.directives[0]
    assert directive.tag == DirectiveTag.RENAME_CHAT
    assert directive.attributes == {"newname": "Trip Planning"}
    assert result.visible_text == "Here is your itinerary."
    assert result.rename == "Trip Planning"
    assert result.has_rename_directive


def test_text_without_tags_is_unchanged() -> None:
    text = "  plain reply with a < b and c > d  "
    result = parse_directives(text)
    assert result.directives == ()
    assert result.visible_text == text
    assert result.rename is None


def test_unknown_tags_are_left_alone() -> None:
    text = "Use <div class='x'/> and <b>bold</b>."
    result = parse_directives(text)
    assert result.directives == ()
    assert result.visible_text == text


def test_multiple_mixed_directives_in_order() -> None:
    text = (
        "<set-topic topic='Travel'/>Intro. <highlight text=\"Book early\" />\n"
        "Body <search query=\"cheap flights\"/> end.<create-thread name=\"Hotels\"/>"
    )
    result = parse_directives(text)
    assert [d.tag for d in result.directives] == [
        DirectiveTag.SET_TOPIC,
        DirectiveTag.HIGHLIGHT,
        DirectiveTag.SEARCH,
        DirectiveTag.CREATE_THREAD,
    ]
    assert result.directives[0].get("topic") == "Travel"
    assert result.directives[3].get("name") == "Hotels"
    assert result.visible_text == "Intro. \nBody  end."
    assert result.rename is None


def test_attribute_entities_are_unescaped() -> None:
    result = parse_directives('<highlight text="a &amp; b &lt;c&gt; &quot;d&quot; &apos;e&apos;"/>')
    assert result.directives[0].get("text") == "a & b <c> \"d\" 'e'"


def test_extraction_is_idempotent() -> None:
    first = parse_directives('<rename-chat newname="X"/> Hello <search query="y"/> world')
    second = parse_directives(first.visible_text)
    assert second.directives == ()
    assert second.visible_text == first.visible_text


def test_extraction_is_idempotent_when_removal_joins_a_new_tag() -> None:
    first = parse_directives('<rena<rename-chat newname="x" />me-chat newname="y" />')
    assert [d.get("newname") for d in first.directives] == ["x", "y"]
    assert first.visible_text == ""
    assert first.rename == "x"

    second = parse_directives(first.visible_text)
    assert second.directives == ()
    assert second.visible_text == first.visible_text


def test_joined_malformed_markup_is_left_visible() -> None:
    first = parse_directives('Hi <rena<search query="q" />me-chat newname=oops />')
    assert [d.tag for d in first.directives] == [DirectiveTag.SEARCH]
    assert first.visible_text == "Hi <rename-chat newname=oops />"

    second = parse_directives(first.visible_text)
    assert second.directives == ()
    assert second.visible_text == first.visible_text


@pytest.mark.parametrize(
    "text",
    [
        '<rename-chat newname="Unterminated" Hello -> bye',
        '<rename-chat newname="Open">Hello',
        '<rename-chat newname=Unquoted /> Hello',
        '<rename-chat newname="a" newname="b" /> Hello',
        '<set-topic topic="x"></set-topic> Hello',
        '<highlight text="ok"/> then <search query="broken>',
    ],
)
def test_malformed_markup_returns_original(text: str, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="vulpecula.directives"):
        result = parse_directives(text)
    assert result.directives == ()
    assert result.visible_text == text
    assert result.rename is None
    assert "malformed directive markup" in caplog.text


def test_legacy_rename_used_without_first_class_rename() -> None:
    result = parse_directives('<rename title="Old Style"/>\nAnswer.')
    assert result.directives == ()
    assert result.rename == "Old Style"
    assert result.visible_text == "Answer."
    assert not result.has_rename_directive


def test_first_class_rename_beats_legacy() -> None:
    result = parse_directives('<rename newname="Legacy"/><rename-chat newname="Modern"/>Text')
    assert result.rename == "Modern"
    assert [d.tag for d in result.directives] == [DirectiveTag.RENAME_CHAT]
    assert result.visible_text == "Text"


def test_raw_text_is_preserved() -> None:
    text = '<search query="q"/> hi'
    assert parse_directives(text).raw_text == text


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------


def test_commands_prompt_lists_vocabulary() -> None:
    prompt = commands_prompt()
    for tag in DirectiveTag:
        assert f"<{tag.value} " in prompt


def test_add_commands_to_system_message() -> None:
    system = add_commands_to_system_message("Be brief.")
    assert system.startswith("Be brief.\n\n")
    assert "rename-chat" in system


# ---------------------------------------------------------------------------
# dispatch_directives
# ---------------------------------------------------------------------------


def test_dispatch_rename_emits_event_and_notification() -> None:
    recorder = _Recorder()
    result = parse_directives('<rename-chat newname="Trip Planning" />Hi')
    events = dispatch_directives(result, "chat-1", recorder)
    assert events == recorder.events
    assert events[0] == RenameSuggestedEvent(chat_id="chat-1", new_name="Trip Planning")
    notification = events[1]
    assert isinstance(notification, NotificationEvent)
    assert notification.action == "rename-chat"
    assert notification.data == {"chatId": "chat-1", "newName": "Trip Planning"}


def test_dispatch_all_kinds() -> None:
    recorder = _Recorder()
    result = parse_directives(
        '<set-topic topic="T"/><highlight text="H"/><search query="Q"/><create-thread name="N"/>'
    )
    dispatch_directives(result, "c", recorder)
    assert recorder.events == [
        TopicSetEvent(chat_id="c", topic="T"),
        HighlightEvent(text="H"),
        SearchSuggestedEvent(query="Q"),
        ThreadCreateEvent(chat_id="c", name="N"),
    ]


def test_dispatch_without_chat_id_skips_chat_scoped_events() -> None:
    recorder = _Recorder()
    result = parse_directives(
        '<rename-chat newname="R"/><set-topic topic="T"/><highlight text="H"/><create-thread name="N"/>'
    )
    dispatch_directives(result, None, recorder)
    assert recorder.events == [HighlightEvent(text="H")]


def test_dispatch_skips_missing_attributes() -> None:
    recorder = _Recorder()
    dispatch_directives(parse_directives('<search other="x"/><highlight text=""/>'), "c", recorder)
    assert recorder.events == []


def test_dispatch_legacy_rename_fallback() -> None:
    recorder = _Recorder()
    dispatch_directives(parse_directives('<rename name="Legacy"/>Body'), "c", recorder)
    assert recorder.events[0] == RenameSuggestedEvent(chat_id="c", new_name="Legacy")
    assert len(recorder.events) == 2


def test_dispatch_legacy_ignored_when_first_class_present() -> None:
    recorder = _Recorder()
    result = parse_directives('<rename name="Legacy"/><rename-chat newname="Modern"/>')
    dispatch_directives(result, "c", recorder)
    renames = [e for e in recorder.events if isinstance(e, RenameSuggestedEvent)]
    assert renames == [RenameSuggestedEvent(chat_id="c", new_name="Modern")]


def test_dispatch_through_event_emitter() -> None:
    emitter = EventEmitter()
    seen: list[str] = []
    emitter.subscribe(SearchSuggestedEvent, lambda e: seen.append(e.query))
    dispatch_directives(parse_directives('<search query="python"/>'), "c", emitter)
    assert seen == ["python"]
