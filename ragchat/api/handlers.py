"""
API handlers: call the orchestrator, map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Marshalling and exception-to-HTTP mapping.
Lives in the API layer so services stay free of FastAPI/HTTP types.
"""

import logging

from fastapi import HTTPException

from ragchat.core.errors import (
    IngestionError,
    RequestTimeoutError,
    ServiceUnavailableError,
    UnknownStrategyError,
)
from ragchat.core.models import StrategyKind
from ragchat.schemas.coffee import CoffeeDetails
from ragchat.schemas.query import AskResponse, ConversationsResponse, HistoryResponse, MessageOut
from ragchat.services.conversation_service import ConversationOrchestrator

logger = logging.getLogger(__name__)


async def handle_ask(
    orchestrator: ConversationOrchestrator,
    question: str,
    strategy: str,
    conversation_id: str,
) -> AskResponse:
    """Run one conversation turn; 400 unknown strategy, 503 dependency down, 504 timeout."""
    try:
        kind = StrategyKind.parse(strategy)
        answer = await orchestrator.ask(question, kind, conversation_id)
    except UnknownStrategyError as e:
        raise HTTPException(
            status_code=400,
            detail=f"{e}. Supported: {', '.join(k.value for k in StrategyKind)}",
        ) from e
    except RequestTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e)) from e
    except ServiceUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    return AskResponse(answer=answer, strategy=kind.value, conversation_id=conversation_id)


async def handle_ingest(orchestrator: ConversationOrchestrator, coffee: CoffeeDetails) -> None:
    try:
        await orchestrator.ingest(coffee)
    except IngestionError as e:
        raise HTTPException(status_code=500, detail=f"Ingestion failed: {e.message}") from e


def handle_history(orchestrator: ConversationOrchestrator, conversation_id: str) -> HistoryResponse:
    messages = [MessageOut(role=m.role.value, text=m.text) for m in orchestrator.history(conversation_id)]
    return HistoryResponse(conversation_id=conversation_id, messages=messages)


def handle_conversations(orchestrator: ConversationOrchestrator) -> ConversationsResponse:
    return ConversationsResponse(conversation_ids=orchestrator.conversations())


async def handle_clear(orchestrator: ConversationOrchestrator, conversation_id: str) -> None:
    await orchestrator.clear(conversation_id)
