"""
API routes for the conversation service: system, ingestion and conversation endpoints. Routes only delegate to handlers.
"""

import logging

from fastapi import APIRouter, Depends, Response

from ragchat.api.handlers import (
    handle_ask,
    handle_clear,
    handle_conversations,
    handle_history,
    handle_ingest,
)
from ragchat.core.models import StrategyKind
from ragchat.schemas.coffee import CoffeeDetails
from ragchat.schemas.query import AskRequest, AskResponse, ChatMessage, ConversationsResponse, HistoryResponse
from ragchat.services.conversation_service import ConversationOrchestrator, get_orchestrator

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "RAG chat backend running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


@router.get("/strategies", tags=["system"], summary="List supported strategy kinds")
def strategies() -> dict:
    return {"strategies": [k.value for k in StrategyKind]}


# --- Ingestion ---

@router.post(
    "/ingest",
    status_code=204,
    tags=["ingestion"],
    summary="Ingest coffee details into the vector store",
    description="Stores the record synchronously. 204 on success, 422 on invalid body, 500 if storing fails.",
)
async def ingest(
    coffee: CoffeeDetails,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> Response:
    logger.info("[api:ingest] IN  name=%r origin=%r", coffee.name, coffee.origin)
    await handle_ingest(orchestrator, coffee)
    return Response(status_code=204)


# --- Conversation ---

@router.post(
    "/ask",
    response_model=AskResponse,
    tags=["conversation"],
    summary="Ask the assistant under a strategy",
    description="Send a question; receive the answer. 400 on unknown strategy, 503 if a dependency is down, 504 on timeout.",
)
async def post_ask(
    body: AskRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> AskResponse:
    logger.info("[api:post_ask] IN  strategy=%s conversation_id=%s", body.strategy, body.conversation_id)
    return await handle_ask(orchestrator, body.question, body.strategy, body.conversation_id)


@router.post(
    "/conversation/{conversation_id}/ask/{strategy}",
    response_model=AskResponse,
    tags=["conversation"],
    summary="Send a chat message in a conversation",
)
async def post_message(
    conversation_id: str,
    strategy: str,
    body: ChatMessage,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> AskResponse:
    logger.info("[api:post_message] IN  strategy=%s conversation_id=%s", strategy, conversation_id)
    return await handle_ask(orchestrator, body.message, strategy, conversation_id)


@router.get(
    "/conversation/{conversation_id}/history",
    response_model=HistoryResponse,
    tags=["conversation"],
    summary="Messages of a conversation, oldest first",
)
def get_history(
    conversation_id: str,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> HistoryResponse:
    return handle_history(orchestrator, conversation_id)


@router.get(
    "/conversations",
    response_model=ConversationsResponse,
    tags=["conversation"],
    summary="Conversation ids with stored history",
)
def get_conversations(
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> ConversationsResponse:
    return handle_conversations(orchestrator)


@router.delete(
    "/conversation/{conversation_id}",
    status_code=204,
    tags=["conversation"],
    summary="Clear a conversation's history",
)
async def delete_conversation(
    conversation_id: str,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> Response:
    logger.info("[api:delete_conversation] IN  conversation_id=%s", conversation_id)
    await handle_clear(orchestrator, conversation_id)
    return Response(status_code=204)
