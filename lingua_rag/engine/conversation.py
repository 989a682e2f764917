"""Conversation context management for multi-turn questions.

Responsibilities:
- Keep the most recent turns of a chat transcript
- Format them into the plain-text conversation context the pipeline accepts
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

_ROLE_LABELS = {"user": "User", "assistant": "Assistant"}


@dataclass(frozen=True)
class HistoryMessage:
    """A single message in conversation history.

    Attributes:
        role: Either "user" or "assistant"
        content: The message text content
    """
    role: str
    content: str

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "HistoryMessage":
        role = str(payload.get("role") or "user").strip().lower()
        return cls(role=role, content=str(payload.get("content") or ""))


def truncate_history(
    history: list[HistoryMessage] | None,
    max_messages: int = 10,
) -> list[HistoryMessage]:
    """Keep only the most recent messages.

    Args:
        history: List of history messages, or None
        max_messages: Maximum number of messages to keep (default 10 = 5 exchanges)

    Returns:
        List of the most recent messages, or empty list if input is None/empty
    """
    if not history or max_messages <= 0:
        return []

    if len(history) <= max_messages:
        return list(history)

    return list(history[-max_messages:])


def format_history_for_prompt(
    history: Iterable[HistoryMessage] | None,
    max_chars_per_message: int = 4000,
) -> str:
    """Format conversation history as a "Role: content" block.

    Messages longer than ``max_chars_per_message`` are cut and end in "...".
    Empty messages are skipped. Returns "" when there is nothing to format.
    """
    if not history:
        return ""

    lines: list[str] = []
    for msg in history:
        content = (msg.content or "").strip()
        if not content:
            continue
        if len(content) > max_chars_per_message:
            content = content[: max_chars_per_message - 3] + "..."
        label = _ROLE_LABELS.get(msg.role, msg.role.capitalize() or "User")
        lines.append(f"{label}: {content}")

    return "\n".join(lines)


def last_exchange(
    history: list[HistoryMessage] | None,
) -> list[HistoryMessage]:
    """Extract the last complete user+assistant exchange from history.

    Returns at most 2 messages: the last user message and the assistant reply
    that follows it. Empty list if no complete exchange is found.
    """
    if not history:
        return []

    last_user_idx: int | None = None
    last_asst_idx: int | None = None

    for i in range(len(history) - 1, -1, -1):
        if history[i].role == "assistant" and last_asst_idx is None:
            last_asst_idx = i
        elif history[i].role == "user" and last_asst_idx is not None:
            last_user_idx = i
            break

    if last_user_idx is None or last_asst_idx is None:
        return []

    return [history[last_user_idx], history[last_asst_idx]]
