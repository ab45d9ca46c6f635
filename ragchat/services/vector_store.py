"""
Vector store: embeddings (HF Inference API), Milvus Cloud storage, and an in-process store.

Responsibility: Embed documents via all-MiniLM-L6-v2, store them with metadata, and answer
similarity queries with cosine scores. Milvus is used when MILVUS_URI/MILVUS_TOKEN are set;
otherwise documents live in process memory (lost on restart).
"""

import asyncio
import logging
import math
from typing import Any, Protocol, Sequence

import httpx

from ragchat.core.config import (
    COLLECTION_NAME,
    EMBED_API_TIMEOUT,
    EMBED_BATCH_SIZE,
    HF_API_KEY,
    HF_EMBED_MODEL,
    MILVUS_TOKEN,
    MILVUS_URI,
    VECTOR_DIM,
)
from ragchat.core.errors import ServiceUnavailableError
from ragchat.core.models import Document

logger = logging.getLogger(__name__)

HF_API_URL_ROUTER = (
    "https://router.huggingface.co/hf-inference/models/"
    f"{HF_EMBED_MODEL}/pipeline/feature-extraction"
)
HF_API_URL_STANDARD = f"https://api-inference.huggingface.co/models/{HF_EMBED_MODEL}"


class Embedder(Protocol):
    async def embed(self, texts: list[str]) -> list[list[float]]: ...


class VectorStore(Protocol):
    async def add(self, documents: Sequence[Document]) -> None: ...

    async def query(self, text: str, top_k: int, threshold: float) -> list[Document]: ...


def normalize(vec: Sequence[float]) -> list[float]:
    norm = math.sqrt(sum(x * x for x in vec))
    if norm == 0:
        norm = 1.0
    return [x / norm for x in vec]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def rank(documents: Sequence[Document], top_k: int, threshold: float) -> list[Document]:
    """Keep score >= threshold, highest first (ties keep storage order), at most top_k."""
    kept = [d for d in documents if d.score is not None and d.score >= threshold]
    kept.sort(key=lambda d: -d.score)
    return kept[:top_k]


class HuggingFaceEmbedder:
    def __init__(
        self,
        api_key: str = HF_API_KEY,
        batch_size: int = EMBED_BATCH_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._batch_size = batch_size
        self._transport = transport

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Batch embed texts using Hugging Face Inference API (all-MiniLM-L6-v2).
        Returns 384-dim vectors normalized for cosine similarity.
        """
        if not texts:
            return []
        if not self._api_key:
            raise ServiceUnavailableError(
                "HF_API_KEY must be set in .env. Get a token from https://huggingface.co/settings/tokens"
            )

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        all_embeddings: list[list[float]] = []

        async with httpx.AsyncClient(timeout=EMBED_API_TIMEOUT, transport=self._transport) as client:
            for i in range(0, len(texts), self._batch_size):
                batch = texts[i : i + self._batch_size]
                payload = {"inputs": batch, "options": {"wait_for_model": True}}
                response = await client.post(HF_API_URL_ROUTER, json=payload, headers=headers)
                if response.status_code == 403:
                    response = await client.post(HF_API_URL_STANDARD, json=payload, headers=headers)
                if response.status_code != 200:
                    if response.status_code == 401:
                        raise ServiceUnavailableError(
                            "Invalid HF API key. Check HF_API_KEY at https://huggingface.co/settings/tokens"
                        )
                    raise ServiceUnavailableError(
                        f"HF API error {response.status_code}: {response.text[:200]}"
                    )

                result = response.json()
                if isinstance(result, list) and result and isinstance(result[0], list):
                    batch_emb = result
                else:
                    batch_emb = [
                        item if isinstance(item, list) else [item]
                        for item in (result if isinstance(result, list) else [result])
                    ]
                all_embeddings.extend(normalize(vec) for vec in batch_emb)

        logger.info("[vector_store:embed] OUT vectors=%d", len(all_embeddings))
        return all_embeddings


class InMemoryVectorStore:
    """Documents and their vectors in a list, searched by brute-force cosine similarity."""

    def __init__(self, embedder: Embedder) -> None:
        self._embedder = embedder
        self._entries: list[tuple[Document, list[float]]] = []
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def add(self, documents: Sequence[Document]) -> None:
        if not documents:
            return
        vectors = await self._embedder.embed([d.text for d in documents])
        if len(vectors) != len(documents):
            raise ValueError(f"Expected {len(documents)} embeddings, got {len(vectors)}")
        async with self._lock:
            self._entries.extend(zip(documents, vectors))
        logger.info("[vector_store:add] stored=%d total=%d", len(documents), len(self._entries))

    async def query(self, text: str, top_k: int, threshold: float) -> list[Document]:
        vectors = await self._embedder.embed([text])
        if not vectors:
            return []
        query_vec = vectors[0]
        scored = [doc.with_score(cosine_similarity(query_vec, vec)) for doc, vec in self._entries]
        results = rank(scored, top_k, threshold)
        logger.info(
            "[vector_store:query] IN  query=%r OUT candidates=%d kept=%d scores=%s",
            text, len(scored), len(results), [round(d.score, 4) for d in results],
        )
        return results


class MilvusVectorStore:
    """
    Milvus Cloud collection with a COSINE index. pymilvus is blocking, so every call
    runs in a worker thread.
    """

    def __init__(
        self,
        embedder: Embedder,
        uri: str = MILVUS_URI,
        token: str = MILVUS_TOKEN,
        collection_name: str = COLLECTION_NAME,
        dimension: int = VECTOR_DIM,
    ) -> None:
        if not uri or not token:
            raise ServiceUnavailableError("MILVUS_URI and MILVUS_TOKEN must be set in .env")
        self._embedder = embedder
        self._uri = uri
        self._token = token
        self._collection_name = collection_name
        self._dimension = dimension
        self._client: Any = None

    def _get_client(self) -> Any:
        """
        Connect to Milvus Cloud on first use. Creates the collection if it does not exist
        (dynamic fields on, so text and metadata are stored alongside the vector).
        """
        if self._client is not None:
            return self._client

        from pymilvus import MilvusClient

        client = MilvusClient(uri=self._uri, token=self._token)
        logger.info("Milvus connection established")
        if not client.has_collection(self._collection_name):
            client.create_collection(
                collection_name=self._collection_name,
                dimension=self._dimension,
                primary_field_name="id",
                vector_field_name="vector",
                metric_type="COSINE",
                auto_id=True,
            )
            logger.info("Collection %s created (dim=%s)", self._collection_name, self._dimension)
        self._client = client
        return client

    def _insert(self, rows: list[dict]) -> None:
        client = self._get_client()
        client.insert(collection_name=self._collection_name, data=rows)
        client.flush(collection_name=self._collection_name)

    def _search(self, vector: list[float], limit: int) -> list:
        client = self._get_client()
        results = client.search(
            collection_name=self._collection_name,
            data=[vector],
            limit=limit,
            output_fields=["text", "metadata"],
            search_params={"metric_type": "COSINE"},
        )
        return results[0] if results else []

    async def add(self, documents: Sequence[Document]) -> None:
        """Embed every document first, then insert them in a single batch and flush."""
        if not documents:
            return
        vectors = await self._embedder.embed([d.text for d in documents])
        rows = [
            {"vector": vec, "text": doc.text, "metadata": dict(doc.metadata)}
            for doc, vec in zip(documents, vectors)
        ]
        await asyncio.to_thread(self._insert, rows)
        logger.info("Embedded and stored %d documents", len(rows))

    async def query(self, text: str, top_k: int, threshold: float) -> list[Document]:
        vectors = await self._embedder.embed([text])
        if not vectors:
            return []
        hits = await asyncio.to_thread(self._search, vectors[0], top_k)
        candidates = []
        for h in hits:
            # COSINE metric: distance is the similarity
            score = float(h.get("distance", h.get("score", 0.0)))
            entity = h.get("entity") or h
            candidates.append(Document(
                text=entity.get("text", ""),
                metadata=entity.get("metadata") or {},
                score=score,
            ))
        results = rank(candidates, top_k, threshold)
        logger.info(
            "[vector_store:query] IN  query=%r OUT candidates=%d kept=%d",
            text, len(candidates), len(results),
        )
        return results


def build_vector_store(embedder: Embedder | None = None) -> VectorStore:
    """Milvus when configured, otherwise the in-process store."""
    embedder = embedder or HuggingFaceEmbedder()
    if MILVUS_URI and MILVUS_TOKEN:
        return MilvusVectorStore(embedder)
    logger.info("[vector_store] MILVUS_URI not set; keeping documents in memory")
    return InMemoryVectorStore(embedder)
