"""
Unit tests for the chat strategies (fake chat model, keyword embedder, mocked web search).
"""

import json

import httpx
import pytest

from conftest import YIRGACHEFFE, FailingEmbedder, FakeChatModel
from ragchat.core.config import FALLBACK_ANSWER
from ragchat.core.errors import IngestionError
from ragchat.core.memory import ConversationMemory
from ragchat.core.models import Message, Role
from ragchat.schemas.coffee import CoffeeDetails
from ragchat.services.strategies import (
    ChatService,
    ToolsService,
    VectorStoreRagService,
    WebSearchRagService,
    answer_or_fallback,
    serialize_record,
)
from ragchat.services.vector_store import InMemoryVectorStore
from ragchat.services.web_search import WebSearchRetriever

ACME_RESULTS = {
    "results": [
        {"title": "Acme Roasters", "url": "https://acme.example", "content": "Acme Roasters, 1 Bean St, Portland.", "score": 0.9},
    ]
}


def factory_for(model: FakeChatModel):
    return lambda: model


def tavily(handler) -> WebSearchRetriever:
    return WebSearchRetriever(api_key="tvly-test", transport=httpx.MockTransport(handler))


def test_answer_or_fallback() -> None:
    assert answer_or_fallback(None) == FALLBACK_ANSWER
    assert answer_or_fallback("  \n") == FALLBACK_ANSWER
    assert answer_or_fallback("Paris.") == "Paris."


def test_serialize_record_uses_aliases() -> None:
    coffee = CoffeeDetails.model_validate(YIRGACHEFFE)
    assert json.loads(serialize_record(coffee)) == YIRGACHEFFE
    assert json.loads(serialize_record({"a": 1})) == {"a": 1}


class TestChatService:
    async def test_first_turn_sends_only_the_question(self, memory: ConversationMemory) -> None:
        model = FakeChatModel(reply="Paris.")
        answer = await ChatService(factory_for(model), memory).answer("What is the capital of France?", "c1")
        assert answer == "Paris."
        assert model.calls[0]["messages"] == [{"role": "user", "content": "What is the capital of France?"}]
        assert model.calls[0]["tools"] == []
        assert model.calls[0]["conversation_id"] == "c1"

    async def test_history_precedes_question(self, memory: ConversationMemory) -> None:
        await memory.append("c1", Message(Role.USER, "What is the capital of France?"), Message(Role.ASSISTANT, "Paris."))
        model = FakeChatModel(reply="About 2.1 million.")
        await ChatService(factory_for(model), memory).answer("And its population?", "c1")
        assert model.calls[0]["messages"] == [
            {"role": "user", "content": "What is the capital of France?"},
            {"role": "assistant", "content": "Paris."},
            {"role": "user", "content": "And its population?"},
        ]

    async def test_strategy_does_not_write_memory(self, memory: ConversationMemory) -> None:
        await ChatService(factory_for(FakeChatModel()), memory).answer("hi", "c1")
        assert memory.history("c1") == ()

    @pytest.mark.parametrize("reply", [None, "", "   "])
    async def test_empty_reply_is_fallback(self, memory: ConversationMemory, reply) -> None:
        answer = await ChatService(factory_for(FakeChatModel(reply=reply)), memory).answer("hi", "c1")
        assert answer == FALLBACK_ANSWER


class TestWebSearchRagService:
    async def test_searches_rewritten_query_and_answers_original_question(self, memory: ConversationMemory) -> None:
        await memory.append(
            "c1",
            Message(Role.USER, "Who roasts my Yirgacheffe?"),
            Message(Role.ASSISTANT, "Acme Roasters."),
        )
        searched = []

        def handler(request: httpx.Request) -> httpx.Response:
            searched.append(json.loads(request.content)["query"])
            return httpx.Response(200, json=ACME_RESULTS)

        def reply(messages):
            if messages[-1]["content"].startswith("You rewrite user questions"):
                return "Acme Roasters headquarters address"
            return "1 Bean St, Portland."

        model = FakeChatModel(reply=reply)
        service = WebSearchRagService(factory_for(model), memory, tavily(handler))
        answer = await service.answer("Where are they located?", "c1")

        assert answer == "1 Bean St, Portland."
        assert searched == ["Acme Roasters headquarters address"]
        final = model.calls[-1]["messages"]
        assert final[0] == {"role": "user", "content": "Who roasts my Yirgacheffe?"}
        assert final[1] == {"role": "assistant", "content": "Acme Roasters."}
        assert "Acme Roasters, 1 Bean St, Portland." in final[-1]["content"]
        assert "Query: Where are they located?" in final[-1]["content"]

    async def test_search_failure_still_answers(self, memory: ConversationMemory) -> None:
        model = FakeChatModel(reply="I don't know.")
        service = WebSearchRagService(factory_for(model), memory, tavily(lambda r: httpx.Response(500)))
        assert await service.answer("Where is Acme?", "c1") == "I don't know."
        # no documents: the question goes to the model as-is
        assert model.calls[-1]["messages"][-1] == {"role": "user", "content": "Where is Acme?"}

    async def test_rewriter_failure_searches_original_question(self, memory: ConversationMemory) -> None:
        searched = []

        def handler(request: httpx.Request) -> httpx.Response:
            searched.append(json.loads(request.content)["query"])
            return httpx.Response(200, json={"results": []})

        def reply(messages):
            if messages[-1]["content"].startswith("You rewrite user questions"):
                return None
            return "No idea."

        service = WebSearchRagService(factory_for(FakeChatModel(reply=reply)), memory, tavily(handler))
        await service.answer("Acme Roasters address", "c1")
        assert searched == ["Acme Roasters address"]


class TestVectorStoreRagService:
    async def test_answers_over_similar_documents_without_rewrite(self, memory, vector_store) -> None:
        model = FakeChatModel(reply="Ethiopia.")
        service = VectorStoreRagService(factory_for(model), memory, vector_store)
        await service.ingest(CoffeeDetails.model_validate(YIRGACHEFFE))

        answer = await service.answer("Where is my Yirgacheffe from?", "c1")

        assert answer == "Ethiopia."
        assert len(model.calls) == 1
        prompt = model.calls[0]["messages"][-1]["content"]
        assert '"origin":"Ethiopia"' in prompt
        assert "Query: Where is my Yirgacheffe from?" in prompt

    async def test_no_similar_documents_sends_plain_question(self, memory, vector_store) -> None:
        model = FakeChatModel(reply=None)
        service = VectorStoreRagService(factory_for(model), memory, vector_store)
        assert await service.answer("Tell me about Nyeri", "c1") == FALLBACK_ANSWER
        assert model.calls[0]["messages"] == [{"role": "user", "content": "Tell me about Nyeri"}]

    async def test_ingest_array_stores_one_document_per_element(self, memory, vector_store) -> None:
        service = VectorStoreRagService(factory_for(FakeChatModel()), memory, vector_store)
        await service.ingest([YIRGACHEFFE, {"name": "Nyeri AA", "origin": "Kenya"}])
        assert len(vector_store) == 2

    async def test_ingest_failure_stores_nothing(self, memory) -> None:
        store = InMemoryVectorStore(FailingEmbedder())
        service = VectorStoreRagService(factory_for(FakeChatModel()), memory, store)
        with pytest.raises(IngestionError):
            await service.ingest(YIRGACHEFFE)
        assert len(store) == 0

    async def test_ingest_unserializable_record(self, memory, vector_store) -> None:
        service = VectorStoreRagService(factory_for(FakeChatModel()), memory, vector_store)
        record: dict = {"name": "loop"}
        record["self"] = record
        with pytest.raises(IngestionError):
            await service.ingest(record)
        assert len(vector_store) == 0


class TestToolsService:
    async def test_offers_both_tools(self, memory, vector_store) -> None:
        model = FakeChatModel(reply="Hello!")
        service = ToolsService(factory_for(model), memory, vector_store, WebSearchRetriever(api_key=""))
        assert await service.answer("Hi", "c1") == "Hello!"
        assert model.calls[0]["tools"] == ["get_details_from_coffees", "get_details_from_internet_search"]

    async def test_coffee_tool_answers_from_vector_store(self, memory, vector_store) -> None:
        rag = VectorStoreRagService(factory_for(FakeChatModel()), memory, vector_store)
        await rag.ingest(YIRGACHEFFE)

        def reply(messages):
            return "From Ethiopia." if "Context information" in messages[-1]["content"] else "Your Yirgacheffe is Ethiopian."

        model = FakeChatModel(reply=reply, tool_calls=[("get_details_from_coffees", "Yirgacheffe origin")])
        service = ToolsService(factory_for(model), memory, vector_store, WebSearchRetriever(api_key=""))

        answer = await service.answer("Where is my Yirgacheffe from?", "c1")

        assert answer == "Your Yirgacheffe is Ethiopian."
        assert model.tool_results == [("get_details_from_coffees", "From Ethiopia.")]
        # the tool's own client has no tools and no conversation history
        nested = model.calls[1]
        assert nested["tools"] == []
        assert len(nested["messages"]) == 1

    async def test_tool_without_documents_returns_none(self, memory, vector_store) -> None:
        model = FakeChatModel(reply="I don't know.", tool_calls=[
            ("get_details_from_coffees", "Nyeri"),
            ("get_details_from_internet_search", "Acme address"),
        ])
        service = ToolsService(factory_for(model), memory, vector_store, WebSearchRetriever(api_key=""))
        await service.answer("Tell me about Nyeri", "c1")
        assert model.tool_results == [
            ("get_details_from_coffees", None),
            ("get_details_from_internet_search", None),
        ]
        # only the outer call and the search rewrite reached the model
        assert len(model.calls) == 2

    async def test_internet_tool_uses_web_search(self, memory, vector_store) -> None:
        searched = []

        def handler(request: httpx.Request) -> httpx.Response:
            searched.append(json.loads(request.content)["query"])
            return httpx.Response(200, json=ACME_RESULTS)

        def reply(messages):
            content = messages[-1]["content"]
            if content.startswith("You rewrite user questions"):
                return "Acme Roasters address"
            if "Context information" in content:
                return "1 Bean St."
            return "Acme is at 1 Bean St."

        model = FakeChatModel(reply=reply, tool_calls=[("get_details_from_internet_search", "where is acme")])
        service = ToolsService(factory_for(model), memory, vector_store, tavily(handler))
        assert await service.answer("Where is Acme?", "c1") == "Acme is at 1 Bean St."
        assert searched == ["Acme Roasters address"]
        assert model.tool_results == [("get_details_from_internet_search", "1 Bean St.")]


@pytest.mark.parametrize("reply", [None, "", "  \n"])
async def test_web_search_empty_reply_is_fallback(memory, reply) -> None:
    model = FakeChatModel(reply=reply)
    service = WebSearchRagService(factory_for(model), memory, tavily(lambda r: httpx.Response(200, json=ACME_RESULTS)))
    assert await service.answer("Where is Acme?", "c1") == FALLBACK_ANSWER


@pytest.mark.parametrize("reply", [None, "", "  \n"])
async def test_tools_empty_reply_is_fallback(memory, vector_store, reply) -> None:
    model = FakeChatModel(reply=reply, tool_calls=[("get_details_from_coffees", "Yirgacheffe")])
    service = ToolsService(factory_for(model), memory, vector_store, WebSearchRetriever(api_key=""))
    assert await service.answer("Where is my Yirgacheffe from?", "c1") == FALLBACK_ANSWER
