"""
Agent tools: capabilities the model may call in tool-calling (TOOLS) mode.

Tools: get_details_from_coffees (vector store), get_details_from_internet_search
(rewrite + web search). Each tool answers its query with its own chat client grounded
in what it retrieved, and returns None when nothing was found.
"""

import logging

from ragchat.agent.client import ChatClient, ChatClientConfig, RetrievalAugmentation
from ragchat.agent.llm import ChatModel, Tool
from ragchat.agent.rewriter import MemoryAwareQueryRewriter
from ragchat.services.retrieval_service import SimilarityRetriever
from ragchat.services.web_search import WebSearchRetriever

logger = logging.getLogger(__name__)


class VectorStoreTool:
    """Looks up the user's own coffees in the vector store."""

    name = "get_details_from_coffees"
    description = "Retrieve information about coffees that the user owns"

    def __init__(self, model: ChatModel, retriever: SimilarityRetriever) -> None:
        self._client = ChatClient(ChatClientConfig(
            model=model,
            augmentation=RetrievalAugmentation(retriever=retriever, allow_empty_context=False),
        ))

    async def get_details_from_coffees(self, query: str) -> str | None:
        result = await self._client.run(query)
        logger.info("[tools:%s] documents=%d", self.name, len(result.documents))
        return result.answer

    def as_tool(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            fn=self.get_details_from_coffees,
            query_description="What to look up about the user's coffees",
        )


class WebSearchTool:
    """Searches the internet; the query is rewritten into a search query first."""

    name = "get_details_from_internet_search"
    description = "Retrieve information from searching the internet"

    def __init__(self, model: ChatModel, rewriter_model: ChatModel, retriever: WebSearchRetriever) -> None:
        self._client = ChatClient(ChatClientConfig(
            model=model,
            augmentation=RetrievalAugmentation(
                retriever=retriever,
                query_transformers=(MemoryAwareQueryRewriter(rewriter_model),),
                allow_empty_context=False,
            ),
        ))

    async def get_details_from_internet_search(self, query: str) -> str | None:
        result = await self._client.run(query)
        logger.info("[tools:%s] search_query=%r documents=%d", self.name, result.query.text, len(result.documents))
        return result.answer

    def as_tool(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            fn=self.get_details_from_internet_search,
            query_description="Search query for the web",
        )
