"""Tests for lingua_rag/engine/conversation.py - conversation history helpers."""

from lingua_rag.engine.conversation import (
    HistoryMessage,
    format_history_for_prompt,
    last_exchange,
    truncate_history,
)


def _history(n):
    return [
        HistoryMessage(role="user" if i % 2 == 0 else "assistant", content=f"m{i}")
        for i in range(n)
    ]


class TestHistoryMessage:
    """Tests for HistoryMessage.from_dict."""

    def test_from_dict(self):
        """Role is normalised; missing content becomes empty."""
        assert HistoryMessage.from_dict({"role": " Assistant ", "content": "hi"}) == HistoryMessage("assistant", "hi")
        assert HistoryMessage.from_dict({}) == HistoryMessage("user", "")


class TestTruncateHistory:
    """Tests for truncate_history."""

    def test_none_and_empty(self):
        """No history gives an empty list."""
        assert truncate_history(None) == []
        assert truncate_history([]) == []

    def test_keeps_most_recent(self):
        """Only the last max_messages survive."""
        kept = truncate_history(_history(12), max_messages=4)
        assert [m.content for m in kept] == ["m8", "m9", "m10", "m11"]

    def test_short_history_copied(self):
        """Short histories are returned as a new list."""
        history = _history(3)
        kept = truncate_history(history)
        assert kept == history
        assert kept is not history

    def test_zero_limit(self):
        """A non-positive limit keeps nothing."""
        assert truncate_history(_history(3), max_messages=0) == []


class TestFormatHistory:
    """Tests for format_history_for_prompt."""

    def test_role_labels(self):
        """Messages render as 'Role: content' lines."""
        text = format_history_for_prompt(_history(2))
        assert text == "User: m0\nAssistant: m1"

    def test_skips_empty_and_truncates(self):
        """Blank messages are skipped; long ones end with '...'."""
        history = [
            HistoryMessage("user", "   "),
            HistoryMessage("assistant", "x" * 50),
        ]
        text = format_history_for_prompt(history, max_chars_per_message=10)
        assert text == "Assistant: xxxxxxx..."

    def test_empty(self):
        """Nothing to format gives ''."""
        assert format_history_for_prompt(None) == ""
        assert format_history_for_prompt([]) == ""


class TestLastExchange:
    """Tests for last_exchange."""

    def test_last_complete_pair(self):
        """Returns the last user message and the reply after it."""
        pair = last_exchange(_history(5))
        assert [m.content for m in pair] == ["m2", "m3"]

    def test_no_assistant_reply(self):
        """A lone user message is not an exchange."""
        assert last_exchange([HistoryMessage("user", "q")]) == []
        assert last_exchange(None) == []
