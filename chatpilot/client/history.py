"""
Conversation History
====================

In-memory message history per conversation, used to give the chat model the
context of earlier turns.

- Keyed by conversation id, created lazily on the first message
- Lives only in RAM (lost on restart; persistence belongs to the host app)
- Capped per conversation: once the cap is exceeded the oldest messages are
  dropped so only the most recent ones remain

Separately from the stored history, `optimize_context()` decides how much of
it is actually sent upstream, trading context for input-token cost.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable


@dataclass
class ChatMessage:
    """
    A single role/content message.

    Attributes:
        role: "system", "user" or "assistant"
        content: The message text
        timestamp: When the message was stored
    """
    role: str
    content: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert to the chat completion wire format."""
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_any(cls, message: Any) -> "ChatMessage":
        """Accept a ChatMessage, a {"role", "content"} dict, or an SDK message."""
        if isinstance(message, ChatMessage):
            return message
        if isinstance(message, dict):
            return cls(role=message["role"], content=message.get("content") or "")
        return cls(role=message.role, content=message.content or "")


def estimate_tokens(messages: Iterable[dict]) -> int:
    """Coarse token estimate: total content length divided by four."""
    total_length = sum(len(message.get("content") or "") for message in messages)
    return math.ceil(total_length / 4)


class ConversationHistory:
    """
    Per-conversation message storage with a FIFO cap.

    Example:
        history = ConversationHistory(max_messages=50)

        history.append("conv-1", "user", "Hello!")
        history.append("conv-1", "assistant", "Hi there!")

        history.get("conv-1")
        # [{"role": "user", "content": "Hello!"}, {"role": "assistant", ...}]

        history.clear("conv-1")
    """

    def __init__(self, max_messages: int = 50):
        self.max_messages = max_messages
        self._conversations: dict[str, list[ChatMessage]] = {}

    def append(self, conversation_id: str, role: str, content: str) -> None:
        """
        Add a message, evicting the oldest entries past the cap.
        """
        self.append_message(conversation_id, ChatMessage(role=role, content=content))

    def append_message(self, conversation_id: str, message: Any) -> None:
        messages = self._conversations.setdefault(conversation_id, [])
        messages.append(ChatMessage.from_any(message))

        if len(messages) > self.max_messages:
            self._conversations[conversation_id] = messages[-self.max_messages:]

    def get(self, conversation_id: str) -> list[dict]:
        """Stored messages in chronological order, in wire format."""
        return [message.to_dict() for message in self._conversations.get(conversation_id, [])]

    def get_messages(self, conversation_id: str) -> list[ChatMessage]:
        """Stored messages as ChatMessage objects (with timestamps)."""
        return list(self._conversations.get(conversation_id, []))

    def set(self, conversation_id: str, messages: Iterable[Any]) -> None:
        """
        Replace a conversation's history.

        System messages are dropped: the system prompt is supplied per
        request rather than stored. The cap still applies.
        """
        converted = [
            ChatMessage.from_any(message) for message in messages
        ]
        converted = [message for message in converted if message.role != "system"]
        self._conversations[conversation_id] = converted[-self.max_messages:]

    def clear(self, conversation_id: str) -> None:
        self._conversations.pop(conversation_id, None)

    def clear_all(self) -> None:
        self._conversations.clear()

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._conversations

    def __len__(self) -> int:
        return len(self._conversations)

    def message_count(self, conversation_id: str) -> int:
        return len(self._conversations.get(conversation_id, []))


def optimize_context(
    history: list[dict],
    max_messages: int,
    max_tokens: int
) -> list[dict]:
    """
    Trim history before it is sent upstream.

    Keeps the most recent `max_messages` entries; if those still exceed
    `max_tokens` (chars / 4 per message), drops from the oldest end until the
    remainder fits. The newest message is never split.
    """
    recent = history[-max_messages:] if max_messages > 0 else []
    if estimate_tokens(recent) <= max_tokens:
        return recent

    kept: list[dict] = []
    token_count = 0
    for message in reversed(recent):
        message_tokens = math.ceil(len(message.get("content") or "") / 4)
        if token_count + message_tokens > max_tokens:
            break
        kept.append(message)
        token_count += message_tokens

    kept.reverse()
    return kept
