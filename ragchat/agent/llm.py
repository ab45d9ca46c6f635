"""
Chat LLM: OpenAI (primary) or Hugging Face (fallback).
When OPENAI_API_KEY is set, uses OpenAI chat completions; otherwise uses HF router.

Both models take OpenAI-style chat messages and return the answer text, or None when
the model produced nothing. Only the OpenAI model supports tools: it runs the
tool-calling loop itself, letting the model decide which tool to call and how often.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, Sequence

import httpx
from openai import AsyncOpenAI, OpenAIError

from ragchat.core.config import (
    AGENT_MAX_TOKENS,
    HF_API_KEY,
    HF_CHAT_URL,
    HF_LLM_MODEL,
    LLM_API_TIMEOUT,
    MAX_AGENTIC_ROUNDS,
    OPENAI_API_KEY,
    OPENAI_LLM_MODEL,
)
from ragchat.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

NO_RESULTS = "No results found."


@dataclass(frozen=True)
class Tool:
    """
    A named capability the model may call with a single free-text query.

    fn returns text, or None when there is nothing to report. invoke() never raises:
    failures are logged and reported to the model as "no results" so it can keep reasoning.
    """

    name: str
    description: str
    fn: Callable[[str], Awaitable[str | None]]
    query_description: str = "Free-text query"

    def to_openai(self) -> dict[str, Any]:
        """OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        "query": {"type": "string", "description": self.query_description},
                    },
                    "required": ["query"],
                },
            },
        }

    async def invoke(self, query: str) -> str | None:
        try:
            return await self.fn(query)
        except Exception:
            logger.exception("[tools:%s] failed for query=%r", self.name, query)
            return None


class ChatModel(Protocol):
    async def complete(
        self,
        messages: Sequence[dict[str, Any]],
        tools: Sequence[Tool] = (),
        conversation_id: str | None = None,
    ) -> str | None: ...


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        args = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        return {}
    return args if isinstance(args, dict) else {}


async def execute_tool(tools_by_name: dict[str, Tool], name: str, arguments: dict[str, Any]) -> str:
    """Execute a tool by name with the given arguments. Returns a string result for the LLM."""
    logger.info("[tools] execute_tool name=%r arguments=%r", name, arguments)
    tool = tools_by_name.get(name)
    if tool is None:
        return f"Unknown tool: {name}"
    query = str(arguments.get("query") or "").strip()
    if not query:
        return "Error: query is required."
    result = await tool.invoke(query)
    if not result or not result.strip():
        return NO_RESULTS
    return result


class OpenAIChatModel:
    def __init__(
        self,
        api_key: str = OPENAI_API_KEY,
        model: str = OPENAI_LLM_MODEL,
        max_tokens: int = AGENT_MAX_TOKENS,
        max_rounds: int = MAX_AGENTIC_ROUNDS,
        client: Any = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=LLM_API_TIMEOUT)
        self._model = model
        self._max_tokens = max_tokens
        self._max_rounds = max_rounds

    async def complete(
        self,
        messages: Sequence[dict[str, Any]],
        tools: Sequence[Tool] = (),
        conversation_id: str | None = None,
    ) -> str | None:
        conversation: list[dict[str, Any]] = list(messages)
        tools_by_name = {t.name: t for t in tools}
        request: dict[str, Any] = {"model": self._model, "max_tokens": self._max_tokens}
        if tools:
            request["tools"] = [t.to_openai() for t in tools]
        if conversation_id:
            request["user"] = conversation_id
        logger.info("[llm:openai] IN  messages=%d tools=%s", len(conversation), list(tools_by_name))

        for round_no in range(1, self._max_rounds + 1):
            try:
                response = await self._client.chat.completions.create(messages=conversation, **request)
            except OpenAIError as e:
                logger.warning("[llm:openai] request failed: %s", e)
                raise ServiceUnavailableError(f"OpenAI request failed: {e}") from e
            msg = response.choices[0].message if response.choices else None
            if not msg:
                return None
            raw_tool_calls = getattr(msg, "tool_calls", None) or []
            if not raw_tool_calls:
                out = (msg.content or "").strip()
                logger.info("[llm:openai] OUT round=%d response_len=%d", round_no, len(out))
                return out or None

            conversation.append({
                "role": "assistant",
                "content": msg.content or "",
                "tool_calls": [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {"name": tc.function.name, "arguments": tc.function.arguments or "{}"},
                    }
                    for tc in raw_tool_calls
                ],
            })
            logger.info("[llm:openai] round=%d tool_calls=%s", round_no, [tc.function.name for tc in raw_tool_calls])
            for tc in raw_tool_calls:
                result = await execute_tool(tools_by_name, tc.function.name, _parse_arguments(tc.function.arguments))
                conversation.append({"role": "tool", "tool_call_id": tc.id, "content": result})

        logger.warning("[llm:openai] no final answer after %d rounds", self._max_rounds)
        return None


class HuggingFaceChatModel:
    def __init__(
        self,
        api_key: str = HF_API_KEY,
        model: str = HF_LLM_MODEL,
        url: str = HF_CHAT_URL,
        max_tokens: int = AGENT_MAX_TOKENS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._url = url
        self._max_tokens = max_tokens
        self._transport = transport

    async def complete(
        self,
        messages: Sequence[dict[str, Any]],
        tools: Sequence[Tool] = (),
        conversation_id: str | None = None,
    ) -> str | None:
        if tools:
            logger.warning("[llm:hf] tools are not supported; answering without %s", [t.name for t in tools])
        if not self._api_key:
            logger.warning("[llm:hf] no HF_API_KEY")
            return None
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        payload = {
            "model": self._model,
            "messages": list(messages),
            "max_tokens": self._max_tokens,
        }
        try:
            async with httpx.AsyncClient(timeout=LLM_API_TIMEOUT, transport=self._transport) as client:
                response = await client.post(self._url, json=payload, headers=headers)
            if response.status_code != 200:
                logger.warning("[llm:hf] HF LLM error %s: %s", response.status_code, response.text[:200])
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("[llm:hf] request failed: %s", e)
            return None
        choices = data.get("choices") or [] if isinstance(data, dict) else []
        if choices and isinstance(choices[0], dict):
            msg = choices[0].get("message") or {}
            out = (msg.get("content") or "").strip()
            logger.info("[llm:hf] OUT response_len=%d", len(out))
            return out or None
        return None


def build_chat_model() -> ChatModel:
    """Uses OpenAI when OPENAI_API_KEY is set, else Hugging Face."""
    if OPENAI_API_KEY:
        return OpenAIChatModel()
    logger.info("[llm] OPENAI_API_KEY not set; using Hugging Face router")
    return HuggingFaceChatModel()
