"""
In-memory conversation store. Keyed by conversation_id; history is not sent from frontend.

One ConversationMemory is created at startup and handed to every strategy and to the
orchestrator. Appends to one conversation are serialized by a lock keyed by its id,
so a (user, assistant) pair is never interleaved with another turn's messages.

Growth is unbounded. max_messages limits what history() returns (the most recent N),
which is the place to hook in capping or summarization.
"""

import asyncio
import logging

from ragchat.core.models import Message

logger = logging.getLogger(__name__)


class ConversationMemory:
    def __init__(self, max_messages: int = 0) -> None:
        self._max_messages = max_messages
        # conversation_id -> messages, oldest first
        self._conversations: dict[str, list[Message]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        return lock

    def history(self, conversation_id: str) -> tuple[Message, ...]:
        """Return the conversation's messages (copy so caller cannot mutate store)."""
        if not conversation_id or not isinstance(conversation_id, str):
            logger.info("[memory:history] IN  conversation_id=%r -> empty", conversation_id)
            return ()
        messages = self._conversations.get(conversation_id) or []
        if self._max_messages > 0:
            messages = messages[-self._max_messages:]
        out = tuple(messages)
        logger.info("[memory:history] IN  conversation_id=%s OUT messages=%d", conversation_id[:16], len(out))
        return out

    async def append(self, conversation_id: str, *messages: Message) -> None:
        """Append messages to the conversation in order, atomically with respect to other appends."""
        if not conversation_id or not isinstance(conversation_id, str):
            raise ValueError("conversation_id is required")
        async with self._lock_for(conversation_id):
            self._conversations.setdefault(conversation_id, []).extend(messages)
        logger.info(
            "[memory:append] conversation_id=%s roles=%s",
            conversation_id[:16],
            [m.role.value for m in messages],
        )

    async def clear(self, conversation_id: str) -> None:
        async with self._lock_for(conversation_id):
            self._conversations.pop(conversation_id, None)
        logger.info("[memory:clear] conversation_id=%s", conversation_id[:16])

    def conversation_ids(self) -> list[str]:
        return list(self._conversations)
