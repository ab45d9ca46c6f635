"""
Conversation orchestrator: route a question to the strategy for its kind and record the turn.

Responsibility: Validate the strategy kind before any model or network call, run the
strategy under a timeout, then store the (user, assistant) pair in memory. Ingestion
always goes to the vector store strategy, whatever strategy a conversation uses.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Mapping

from ragchat.agent.llm import build_chat_model
from ragchat.core.config import MEMORY_MAX_MESSAGES, REQUEST_TIMEOUT
from ragchat.core.errors import RequestTimeoutError
from ragchat.core.memory import ConversationMemory
from ragchat.core.models import Message, Role, StrategyKind
from ragchat.services.strategies import (
    ChatService,
    ChatStrategy,
    IngestionRecord,
    ToolsService,
    VectorStoreRagService,
    WebSearchRagService,
)
from ragchat.services.vector_store import build_vector_store
from ragchat.services.web_search import WebSearchRetriever

logger = logging.getLogger(__name__)


class ConversationOrchestrator:
    def __init__(
        self,
        strategies: Mapping[StrategyKind, ChatStrategy],
        vector_store_rag: VectorStoreRagService,
        memory: ConversationMemory,
        request_timeout: float | None = REQUEST_TIMEOUT,
    ) -> None:
        missing = [kind.value for kind in StrategyKind if kind not in strategies]
        if missing:
            raise ValueError(f"No strategy bound for: {', '.join(missing)}")
        self._strategies = dict(strategies)
        self._vector_store_rag = vector_store_rag
        self._memory = memory
        self._request_timeout = request_timeout

    @property
    def memory(self) -> ConversationMemory:
        return self._memory

    async def ask(self, question: str, kind: str | StrategyKind, conversation_id: str) -> str:
        """
        Answer question under the given strategy kind.

        Raises UnknownStrategyError (before any I/O) for a kind outside StrategyKind, and
        RequestTimeoutError when the strategy does not finish in time; in both cases
        nothing is written to memory.
        """
        strategy_kind = StrategyKind.parse(kind)
        strategy = self._strategies[strategy_kind]
        logger.info(
            "[orchestrator:ask] IN  kind=%s conversation_id=%s question=%r",
            strategy_kind.value, conversation_id, question,
        )
        try:
            answer = await asyncio.wait_for(
                strategy.answer(question, conversation_id),
                timeout=self._request_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning("[orchestrator:ask] timed out after %ss conversation_id=%s", self._request_timeout, conversation_id)
            raise RequestTimeoutError(conversation_id, self._request_timeout) from e

        await self._memory.append(
            conversation_id,
            Message(Role.USER, question),
            Message(Role.ASSISTANT, answer),
        )
        logger.info("[orchestrator:ask] OUT answer_len=%d", len(answer))
        return answer

    async def ingest(self, record: IngestionRecord) -> None:
        await self._vector_store_rag.ingest(record)

    def history(self, conversation_id: str) -> tuple[Message, ...]:
        return self._memory.history(conversation_id)

    def conversations(self) -> list[str]:
        return self._memory.conversation_ids()

    async def clear(self, conversation_id: str) -> None:
        """Forget a conversation's history; the next turn starts fresh."""
        await self._memory.clear(conversation_id)


def build_orchestrator() -> ConversationOrchestrator:
    """Wire the default stack: one memory, one vector store, one web search retriever, per-strategy clients."""
    memory = ConversationMemory(max_messages=MEMORY_MAX_MESSAGES)
    vector_store = build_vector_store()
    web_search = WebSearchRetriever()
    vector_store_rag = VectorStoreRagService(build_chat_model, memory, vector_store)
    strategies: dict[StrategyKind, ChatStrategy] = {
        StrategyKind.DISABLED: ChatService(build_chat_model, memory),
        StrategyKind.WEB_SEARCH: WebSearchRagService(build_chat_model, memory, web_search),
        StrategyKind.VECTOR_STORE: vector_store_rag,
        StrategyKind.TOOLS: ToolsService(build_chat_model, memory, vector_store, web_search),
    }
    return ConversationOrchestrator(strategies, vector_store_rag, memory)


@lru_cache(maxsize=1)
def get_orchestrator() -> ConversationOrchestrator:
    """Process-wide orchestrator for the API, built on first request."""
    return build_orchestrator()
