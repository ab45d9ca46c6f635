"""
Shared fakes: a scripted chat model, a keyword embedder, and wiring helpers.

No network: the chat model answers from a callable, embeddings count vocabulary words.
"""

import re
from typing import Any, Callable, Sequence

import pytest

from ragchat.core.memory import ConversationMemory
from ragchat.core.models import StrategyKind
from ragchat.services.conversation_service import ConversationOrchestrator
from ragchat.services.strategies import (
    ChatService,
    ToolsService,
    VectorStoreRagService,
    WebSearchRagService,
)
from ragchat.services.vector_store import InMemoryVectorStore
from ragchat.services.web_search import WebSearchRetriever

COFFEE_VOCABULARY = [
    "yirgacheffe", "ethiopia", "huila", "colombia", "nyeri", "kenya",
    "floral", "citrus", "caramel", "acme", "coffee", "paris", "france",
]


class FakeChatModel:
    """
    Records every complete() call. reply is a string/None or a callable(messages) -> str | None.
    tool_calls: (name, query) pairs invoked, in order, whenever tools are offered.
    """

    def __init__(self, reply: Any = "ok", tool_calls: Sequence[tuple[str, str]] = ()) -> None:
        self.reply = reply
        self.tool_calls = list(tool_calls)
        self.calls: list[dict[str, Any]] = []
        self.tool_results: list[tuple[str, str | None]] = []

    async def complete(self, messages, tools=(), conversation_id=None):
        self.calls.append({
            "messages": list(messages),
            "tools": [t.name for t in tools],
            "conversation_id": conversation_id,
        })
        if tools:
            by_name = {t.name: t for t in tools}
            for name, query in self.tool_calls:
                self.tool_results.append((name, await by_name[name].invoke(query)))
        if callable(self.reply):
            return self.reply(messages)
        return self.reply

    def user_contents(self) -> list[str]:
        return [c["messages"][-1]["content"] for c in self.calls]


class KeywordEmbedder:
    """One dimension per vocabulary word; texts without vocabulary words embed to zeros."""

    def __init__(self, vocabulary: Sequence[str] = COFFEE_VOCABULARY) -> None:
        self.vocabulary = list(vocabulary)
        self.calls = 0

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls += 1
        vectors = []
        for text in texts:
            words = re.findall(r"\w+", text.lower())
            vectors.append([float(words.count(v)) for v in self.vocabulary])
        return vectors


class FailingEmbedder:
    async def embed(self, texts: list[str]) -> list[list[float]]:
        raise RuntimeError("embedding service down")


def build_test_orchestrator(
    model: FakeChatModel,
    vector_store=None,
    web_search: WebSearchRetriever | None = None,
    memory: ConversationMemory | None = None,
    request_timeout: float | None = None,
) -> ConversationOrchestrator:
    memory = memory or ConversationMemory()
    vector_store = vector_store if vector_store is not None else InMemoryVectorStore(KeywordEmbedder())
    web_search = web_search or WebSearchRetriever(api_key="")
    factory: Callable[[], FakeChatModel] = lambda: model
    vector_store_rag = VectorStoreRagService(factory, memory, vector_store)
    strategies = {
        StrategyKind.DISABLED: ChatService(factory, memory),
        StrategyKind.WEB_SEARCH: WebSearchRagService(factory, memory, web_search),
        StrategyKind.VECTOR_STORE: vector_store_rag,
        StrategyKind.TOOLS: ToolsService(factory, memory, vector_store, web_search),
    }
    return ConversationOrchestrator(strategies, vector_store_rag, memory, request_timeout=request_timeout)


YIRGACHEFFE = {
    "origin": "Ethiopia",
    "name": "Yirgacheffe",
    "tasteNotes": ["floral", "citrus"],
    "roastDate": "2024-01-01",
    "roaster": "Acme",
}


@pytest.fixture
def memory() -> ConversationMemory:
    return ConversationMemory()


@pytest.fixture
def embedder() -> KeywordEmbedder:
    return KeywordEmbedder()


@pytest.fixture
def vector_store(embedder: KeywordEmbedder) -> InMemoryVectorStore:
    return InMemoryVectorStore(embedder)
