"""
Completion Client
=================

Everything between a caller and the chat completion endpoint:

1. QUEUE: priority ordering, FIFO among equals, retries with backoff
2. RATE LIMIT: one-minute request and token budget
3. HISTORY: per-conversation messages, capped at 50
4. TRANSPORT: AsyncOpenAI with SDK-level retries disabled

Usage:
    from chatpilot.client import ChatClient

    client = ChatClient.from_config(get_config())
    response = await client.send_completion([{"role": "user", "content": "Hi"}])
"""

from chatpilot.client.completion import ChatClient
from chatpilot.client.costs import estimate_cost
from chatpilot.client.history import ChatMessage, ConversationHistory
from chatpilot.client.queue import QueuedTask, RequestQueue
from chatpilot.client.rate_limit import RateLimiter, RateLimitState

__all__ = [
    "ChatClient",
    "ChatMessage",
    "ConversationHistory",
    "QueuedTask",
    "RequestQueue",
    "RateLimiter",
    "RateLimitState",
    "estimate_cost",
]
