"""
Memory-aware query rewriting: turn a follow-up question into one self-contained
web search query, resolving pronouns and references against the conversation history.
"""

import logging

from ragchat.agent.client import ChatClient, ChatClientConfig
from ragchat.agent.llm import ChatModel
from ragchat.core.models import Query

logger = logging.getLogger(__name__)

REWRITE_PROMPT = """You rewrite user questions into one, self-contained web search query.
- Resolve pronouns and references using the provided conversation history.
- Include exact entity names and geo qualifiers when known.
- Prefer keywords useful for search (e.g., "address", "headquarters", "location", "official site").
- Output only the final query string. No explanations.

Conversation history:
{history}

Current user question:
{question}"""


def format_history(query: Query) -> str:
    """One "role: text" line per message, oldest first."""
    return "\n".join(f"{m.role.value}: {m.text}" for m in query.history)


class MemoryAwareQueryRewriter:
    """
    Rewrites a Query with its own chat client (no memory, no tools).

    Only text changes: history and context are carried over as they are. When the model
    returns nothing usable, or fails, the original question is kept so retrieval always
    has something to search for.
    """

    def __init__(self, model: ChatModel) -> None:
        self._client = ChatClient(ChatClientConfig(model=model))

    async def rewrite(self, query: Query) -> Query:
        prompt = REWRITE_PROMPT.format(history=format_history(query), question=query.text)
        logger.info("[rewriter] IN  question=%r history_len=%d", query.text, len(query.history))
        try:
            rewritten = await self._client.call(prompt)
        except Exception as e:
            logger.warning("[rewriter] rewrite failed, keeping original question: %s", e)
            rewritten = None
        text = (rewritten or "").strip() or query.text
        logger.info("[rewriter] OUT rewritten=%r", text)
        return query.with_text(text)

    async def transform(self, query: Query) -> Query:
        return await self.rewrite(query)
