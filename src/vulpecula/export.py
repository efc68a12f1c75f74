"""Markdown export of a conversation."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from vulpecula.cost import ChatStats
from vulpecula.types.enums import Role
from vulpecula.types.messages import Message

if TYPE_CHECKING:
    from vulpecula.session import Conversation

TITLE_LENGTH = 50

_ROLE_HEADINGS = {
    Role.USER: "👤 User",
    Role.ASSISTANT: "🤖 Assistant",
}


def _message_section(message: Message) -> list[str]:
    timestamp = message.timestamp.isoformat()
    lines = [
        f"### {_ROLE_HEADINGS.get(message.role, str(message.role))} ({timestamp})",
        "",
        message.content,
        "",
        "<details><summary>Message Metadata</summary>",
        "",
        "```yaml",
        f"role: {message.role}",
        f"model: {message.model}",
        f"timestamp: {timestamp}",
    ]
    if message.usage is not None:
        lines += [
            "tokens:",
            f"  prompt: {message.usage.prompt_tokens}",
            f"  completion: {message.usage.completion_tokens}",
            f"  total: {message.usage.total_tokens}",
        ]
    if message.cost:
        lines.append(f"cost: {message.cost:.4f}")
    if message.error:
        lines.append(f"error: {message.error}")
    lines += ["```", "</details>", "", "---", ""]
    return lines


def conversation_to_markdown(
    conversation: Conversation,
    *,
    stats: ChatStats,
    model: str,
    temperature: float,
    title: str | None = None,
    now: datetime | None = None,
) -> str:
    """Render *conversation* as Markdown with YAML front matter.

    System messages are omitted.
    """
    messages = [m for m in conversation.messages if m.role != Role.SYSTEM]
    if title is None:
        first = messages[0].content if messages else ""
        title = f"{first[:TITLE_LENGTH]}..."
    now = now or datetime.now(timezone.utc)

    lines = [
        "---",
        f'title: "{title}"',
        f"date: {now.isoformat()}",
        f"model: {model}",
        "stats:",
        f"  total_tokens: {stats.total_tokens}",
        f"  prompt_tokens: {stats.prompt_tokens}",
        f"  completion_tokens: {stats.completion_tokens}",
        f"  cost: {stats.cost:.4f}",
        f"messages_count: {len(messages)}",
        f"temperature: {temperature}",
    ]
    if conversation.id:
        lines.append(f"chat_id: {conversation.id}")
    lines.append("models_used:")
    lines += [f"  - {m}" for m in conversation.models_used()]
    lines += ["---", ""]

    for message in messages:
        lines += _message_section(message)
    return "\n".join(lines)
