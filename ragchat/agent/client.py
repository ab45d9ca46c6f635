"""
Chat client: one configured way of talking to the chat model.

A ChatClient is built once from an immutable ChatClientConfig and runs a LangGraph
pipeline per call: transform_query → retrieve → generate. The transform_query and retrieve
nodes only exist when the config has a RetrievalAugmentation. Strategies, the query
rewriter and each tool build their own client, so tools and augmentation never leak
between them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Sequence, TypedDict

from langgraph.graph import END, StateGraph

from ragchat.agent.llm import ChatModel, Tool
from ragchat.core.memory import ConversationMemory
from ragchat.core.models import Document, Message, Query

logger = logging.getLogger(__name__)

CONTEXT_TEMPLATE = """Context information is below.

---------------------
{context}
---------------------

Given the context information and no prior knowledge, answer the query.

Follow these rules:

1. If the answer is not in the context, just say that you don't know.
2. Avoid statements like "Based on the context..." or "The provided information...".

Query: {query}

Answer:"""


class DocumentRetriever(Protocol):
    async def retrieve(self, query: Query) -> list[Document]: ...


class QueryTransformer(Protocol):
    async def transform(self, query: Query) -> Query: ...


@dataclass(frozen=True)
class RetrievalAugmentation:
    """Transform the query (in order), retrieve documents, ground the answer in them."""

    retriever: DocumentRetriever
    query_transformers: tuple[QueryTransformer, ...] = ()
    # False: skip the model entirely when nothing was retrieved
    allow_empty_context: bool = True


@dataclass(frozen=True)
class ChatClientConfig:
    model: ChatModel
    memory: ConversationMemory | None = None
    tools: tuple[Tool, ...] = ()
    augmentation: RetrievalAugmentation | None = None


@dataclass(frozen=True)
class ChatResult:
    answer: str | None
    query: Query
    documents: tuple[Document, ...] = ()


class ChatState(TypedDict):
    question: str
    conversation_id: str | None
    query: Query
    documents: list[Document]
    answer: str | None


def format_documents(documents: Sequence[Document]) -> str:
    """Render documents for the prompt, with title/url when a document has them."""
    blocks = []
    for doc in documents:
        meta = doc.metadata or {}
        header = " ".join(
            f"{key}: {meta[key]}" for key in ("title", "url") if meta.get(key)
        )
        blocks.append(f"{header}\n{doc.text}" if header else doc.text)
    return "\n\n".join(blocks)


def build_messages(
    question: str,
    history: Sequence[Message],
    documents: Sequence[Document] = (),
) -> list[dict[str, Any]]:
    """History (oldest first), then the question; grounded when documents exist."""
    messages: list[dict[str, Any]] = []
    for m in history:
        messages.append({"role": m.role.value, "content": m.text})
    content = question
    if documents:
        content = CONTEXT_TEMPLATE.format(context=format_documents(documents), query=question)
    messages.append({"role": "user", "content": content})
    return messages


class ChatClient:
    def __init__(self, config: ChatClientConfig) -> None:
        self._config = config
        self._graph = self._build_graph()

    def _build_graph(self):
        graph = StateGraph(ChatState)
        graph.add_node("generate", self._generate)
        entry = "generate"

        augmentation = self._config.augmentation
        if augmentation is not None:
            graph.add_node("retrieve", self._retrieve)
            if augmentation.allow_empty_context:
                graph.add_edge("retrieve", "generate")
            else:
                graph.add_conditional_edges("retrieve", self._route_after_retrieve)
            entry = "retrieve"
            if augmentation.query_transformers:
                graph.add_node("transform_query", self._transform_query)
                graph.add_edge("transform_query", "retrieve")
                entry = "transform_query"

        graph.set_entry_point(entry)
        graph.add_edge("generate", END)
        return graph.compile()

    async def _transform_query(self, state: ChatState) -> dict:
        query = state["query"]
        for transformer in self._config.augmentation.query_transformers:
            query = await transformer.transform(query)
        logger.info("[client:transform_query] %r -> %r", state["query"].text, query.text)
        return {"query": query}

    async def _retrieve(self, state: ChatState) -> dict:
        documents = await self._config.augmentation.retriever.retrieve(state["query"])
        logger.info("[client:retrieve] OUT documents=%d", len(documents))
        return {"documents": list(documents)}

    def _route_after_retrieve(self, state: ChatState) -> str:
        return "generate" if state.get("documents") else END

    async def _generate(self, state: ChatState) -> dict:
        history = state["query"].history
        messages = build_messages(
            state["question"],
            history,
            state.get("documents") or [],
        )
        answer = await self._config.model.complete(
            messages,
            tools=self._config.tools,
            conversation_id=state.get("conversation_id"),
        )
        logger.info("[client:generate] OUT answer_len=%d", len(answer or ""))
        return {"answer": answer}

    async def run(self, user_text: str, conversation_id: str | None = None) -> ChatResult:
        """Run the pipeline once. History comes from the bound memory, if any."""
        memory = self._config.memory
        history = memory.history(conversation_id) if memory is not None and conversation_id else ()
        context = {"conversation_id": conversation_id} if conversation_id else {}
        initial: ChatState = {
            "question": user_text,
            "conversation_id": conversation_id,
            "query": Query(text=user_text, history=history, context=context),
            "documents": [],
            "answer": None,
        }
        final = await self._graph.ainvoke(initial)
        return ChatResult(
            answer=final.get("answer"),
            query=final.get("query") or initial["query"],
            documents=tuple(final.get("documents") or ()),
        )

    async def call(self, user_text: str, conversation_id: str | None = None) -> str | None:
        """Answer text, or None when the model produced nothing."""
        result = await self.run(user_text, conversation_id)
        return result.answer
