"""
Retrieval: similarity search over the vector store.

Responsibility: Return at most top_k documents scoring at least the similarity threshold,
best first. A failing store yields no documents; the caller answers ungrounded.
"""

import logging

from ragchat.core.config import SIMILARITY_THRESHOLD, SIMILARITY_TOP_K
from ragchat.core.models import Document, Query
from ragchat.services.vector_store import VectorStore, rank

logger = logging.getLogger(__name__)


class SimilarityRetriever:
    def __init__(
        self,
        store: VectorStore,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        top_k: int = SIMILARITY_TOP_K,
    ) -> None:
        self._store = store
        self.similarity_threshold = similarity_threshold
        self.top_k = top_k

    async def retrieve(self, query: Query) -> list[Document]:
        text = (query.text or "").strip()
        logger.info("[retrieval:retrieve] IN  query=%r", text)
        if not text:
            return []
        try:
            candidates = await self._store.query(text, top_k=self.top_k, threshold=self.similarity_threshold)
        except Exception as e:
            logger.warning("[retrieval:retrieve] vector store query failed: %s", e)
            return []
        documents = rank(candidates, self.top_k, self.similarity_threshold)
        logger.info(
            "[retrieval:retrieve] OUT documents=%d scores=%s",
            len(documents), [round(d.score, 4) for d in documents],
        )
        return documents
