"""
Core data types shared by memory, retrievers, strategies and the orchestrator.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping

from ragchat.core.errors import UnknownStrategyError


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """One turn of a conversation."""

    role: Role
    text: str


@dataclass(frozen=True)
class Query:
    """
    A question on its way to a retriever.

    history is the conversation so far (oldest first); context carries auxiliary
    values (e.g. conversation_id) and must travel with the query unchanged.
    """

    text: str
    history: tuple[Message, ...] = ()
    context: Mapping[str, Any] = field(default_factory=dict)

    def with_text(self, text: str) -> "Query":
        return replace(self, text=text)


@dataclass(frozen=True)
class Document:
    """
    Retrieved or ingested content. score is retriever-specific (cosine similarity
    for the vector store, relevance for web search) and None until retrieved.
    """

    text: str
    metadata: Mapping[str, Any] = field(default_factory=dict)
    score: float | None = None

    def with_score(self, score: float) -> "Document":
        return replace(self, score=score)


class StrategyKind(str, Enum):
    """Closed set of augmentation strategies a conversation can run under."""

    DISABLED = "DISABLED"
    WEB_SEARCH = "WEB_SEARCH"
    VECTOR_STORE = "VECTOR_STORE"
    TOOLS = "TOOLS"

    @classmethod
    def parse(cls, value: "str | StrategyKind") -> "StrategyKind":
        """Resolve a kind by member or name (case-insensitive). Raises UnknownStrategyError."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise UnknownStrategyError(value)
