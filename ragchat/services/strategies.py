"""
Chat strategies: one per StrategyKind, each answering (question, conversation_id) -> text.

Each strategy builds its own chat client(s) from a model factory and reads history from
the shared ConversationMemory. None of them write to memory; the orchestrator stores the
turn once it has an answer. When the model produces no content every strategy answers
FALLBACK_ANSWER.
"""

import json
import logging
from typing import Any, Callable, Mapping, Protocol, Sequence, Union

from pydantic import BaseModel

from ragchat.agent.client import ChatClient, ChatClientConfig, RetrievalAugmentation
from ragchat.agent.llm import ChatModel
from ragchat.agent.rewriter import MemoryAwareQueryRewriter
from ragchat.agent.tools import VectorStoreTool, WebSearchTool
from ragchat.core.config import FALLBACK_ANSWER, SIMILARITY_THRESHOLD, SIMILARITY_TOP_K
from ragchat.core.errors import IngestionError
from ragchat.core.memory import ConversationMemory
from ragchat.ingest.loader import read_json_documents
from ragchat.services.retrieval_service import SimilarityRetriever
from ragchat.services.vector_store import VectorStore
from ragchat.services.web_search import WebSearchRetriever

logger = logging.getLogger(__name__)

ModelFactory = Callable[[], ChatModel]
IngestionRecord = Union[BaseModel, Mapping[str, Any], Sequence[Any]]


class ChatStrategy(Protocol):
    async def answer(self, question: str, conversation_id: str) -> str: ...


def answer_or_fallback(content: str | None) -> str:
    if content is None or not content.strip():
        return FALLBACK_ANSWER
    return content


class ChatService:
    """Plain chat: question + history, no retrieval."""

    def __init__(self, model_factory: ModelFactory, memory: ConversationMemory) -> None:
        self._client = ChatClient(ChatClientConfig(model=model_factory(), memory=memory))

    async def answer(self, question: str, conversation_id: str) -> str:
        return answer_or_fallback(await self._client.call(question, conversation_id))


class WebSearchRagService:
    """
    Web search RAG: the question is rewritten against history into a standalone search
    query, searched on the web, and the original question is answered over the results.
    """

    def __init__(
        self,
        model_factory: ModelFactory,
        memory: ConversationMemory,
        web_search_retriever: WebSearchRetriever,
    ) -> None:
        self._client = ChatClient(ChatClientConfig(
            model=model_factory(),
            memory=memory,
            augmentation=RetrievalAugmentation(
                retriever=web_search_retriever,
                query_transformers=(MemoryAwareQueryRewriter(model_factory()),),
            ),
        ))

    async def answer(self, question: str, conversation_id: str) -> str:
        return answer_or_fallback(await self._client.call(question, conversation_id))


def serialize_record(record: IngestionRecord) -> str:
    """Canonical JSON for a record: pydantic models by alias, anything else via json.dumps."""
    if isinstance(record, BaseModel):
        return record.model_dump_json(by_alias=True)
    return json.dumps(record, default=str, ensure_ascii=False)


class VectorStoreRagService:
    """
    Vector store RAG: answers over the documents most similar to the raw question,
    and ingests records into the same store.
    """

    def __init__(
        self,
        model_factory: ModelFactory,
        memory: ConversationMemory,
        vector_store: VectorStore,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        top_k: int = SIMILARITY_TOP_K,
    ) -> None:
        self._vector_store = vector_store
        self.retriever = SimilarityRetriever(vector_store, similarity_threshold, top_k)
        self._client = ChatClient(ChatClientConfig(
            model=model_factory(),
            memory=memory,
            augmentation=RetrievalAugmentation(retriever=self.retriever),
        ))

    async def answer(self, question: str, conversation_id: str) -> str:
        return answer_or_fallback(await self._client.call(question, conversation_id))

    async def ingest(self, record: IngestionRecord, source: str = "ingest") -> None:
        """
        Serialize the record, read it into documents (one per top-level JSON element)
        and add them to the vector store in one call. Raises IngestionError; on failure
        nothing from the record is stored.
        """
        try:
            raw = serialize_record(record)
            documents = read_json_documents(raw, source=source)
        except (TypeError, ValueError) as e:
            raise IngestionError(f"Could not serialize record: {e}") from e
        if not documents:
            raise IngestionError("Record produced no documents")

        try:
            await self._vector_store.add(documents)
        except Exception as e:
            logger.exception("[ingest] vector store add failed")
            raise IngestionError(f"Could not store record: {e}") from e
        logger.info("[ingest] OUT documents=%d source=%s", len(documents), source)


class ToolsService:
    """
    Tool-augmented chat: the model gets the coffee lookup and the internet search as
    tools and decides on its own whether and how often to call them.
    """

    def __init__(
        self,
        model_factory: ModelFactory,
        memory: ConversationMemory,
        vector_store: VectorStore,
        web_search_retriever: WebSearchRetriever,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        top_k: int = SIMILARITY_TOP_K,
    ) -> None:
        coffees = VectorStoreTool(
            model_factory(),
            SimilarityRetriever(vector_store, similarity_threshold, top_k),
        )
        internet = WebSearchTool(model_factory(), model_factory(), web_search_retriever)
        self._client = ChatClient(ChatClientConfig(
            model=model_factory(),
            memory=memory,
            tools=(coffees.as_tool(), internet.as_tool()),
        ))

    async def answer(self, question: str, conversation_id: str) -> str:
        return answer_or_fallback(await self._client.call(question, conversation_id))
