# Structural JSON reader. No embeddings, no vector DB, no chunking.
# One Document per top-level JSON element: an object is one document, an array one per item.

import json
from typing import Any

from ragchat.core.models import Document


def _element_text(element: Any) -> str:
    if isinstance(element, str):
        return element
    return json.dumps(element, ensure_ascii=False)


def read_json_documents(raw: str | bytes, source: str = "json") -> list[Document]:
    """
    Parse raw JSON and return its top-level elements as documents.
    Raises ValueError (json.JSONDecodeError) when raw is not valid JSON.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    parsed = json.loads(raw)
    if isinstance(parsed, list):
        return [
            Document(text=_element_text(item), metadata={"source": source, "index": i})
            for i, item in enumerate(parsed)
        ]
    return [Document(text=_element_text(parsed), metadata={"source": source})]
