"""
Web search retrieval using the Tavily API.

One POST per query; each result becomes a Document (text = content, metadata title/url,
score = Tavily relevance). Any failure at this boundary (timeout, non-2xx, bad payload)
is logged and returns no documents, so the conversation still gets an answer.
"""

import logging

import httpx

from ragchat.core.config import (
    TAVILY_API_KEY,
    TAVILY_SEARCH_URL,
    WEB_SEARCH_DEPTH,
    WEB_SEARCH_MAX_RESULTS,
    WEB_SEARCH_TIMEOUT,
)
from ragchat.core.models import Document, Query

logger = logging.getLogger(__name__)


class WebSearchRetriever:
    def __init__(
        self,
        api_key: str = TAVILY_API_KEY,
        url: str = TAVILY_SEARCH_URL,
        max_results: int = WEB_SEARCH_MAX_RESULTS,
        search_depth: str = WEB_SEARCH_DEPTH,
        timeout: float = WEB_SEARCH_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._max_results = max_results
        self._search_depth = search_depth
        self._timeout = timeout
        self._transport = transport

    async def retrieve(self, query: Query) -> list[Document]:
        text = (query.text or "").strip()
        logger.info("[web_search:retrieve] IN  query=%r", text)
        if not text:
            return []
        if not self._api_key:
            logger.warning("[web_search:retrieve] no TAVILY_API_KEY; skipping search")
            return []

        payload = {
            "query": text,
            "search_depth": self._search_depth,
            "max_results": self._max_results,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException:
            logger.warning("[web_search:retrieve] Tavily search timed out after %ss", self._timeout)
            return []
        except httpx.HTTPStatusError as e:
            logger.warning(
                "[web_search:retrieve] Tavily API error %s: %s",
                e.response.status_code, e.response.text[:200],
            )
            return []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("[web_search:retrieve] Tavily request failed: %s", e)
            return []

        results = data.get("results") if isinstance(data, dict) else None
        documents = []
        for item in results or []:
            if not isinstance(item, dict):
                continue
            title = item.get("title") or ""
            url = item.get("url") or ""
            try:
                score = float(item.get("score") or 0.0)
            except (TypeError, ValueError):
                logger.warning("[web_search:retrieve] skipping result with bad score %r: %s", item.get("score"), url)
                continue
            logger.info("[web_search:retrieve] found document: %s (%s)", title, url)
            documents.append(Document(
                text=item.get("content") or "",
                metadata={"title": title, "url": url},
                score=score,
            ))
        logger.info("[web_search:retrieve] OUT documents=%d", len(documents))
        return documents
