"""Schemas for the ask and history endpoints."""

from pydantic import BaseModel, Field


class AskRequest(BaseModel):
    """Request body for POST /ask. History is stored server-side by conversation_id."""

    question: str = Field(..., min_length=1, description="User question for the assistant.")
    strategy: str = Field(..., min_length=1, description="One of DISABLED, WEB_SEARCH, VECTOR_STORE, TOOLS.")
    conversation_id: str = Field(..., min_length=1, description="Conversation ID; chat history is stored on the server for it.")


class ChatMessage(BaseModel):
    """Request body for POST /conversation/{conversation_id}/ask/{strategy}."""

    message: str = Field(..., min_length=1, description="User message.")


class AskResponse(BaseModel):
    answer: str = Field(..., description="Final answer from the assistant.")
    strategy: str = Field(..., description="Strategy that produced the answer.")
    conversation_id: str


class MessageOut(BaseModel):
    role: str
    text: str


class HistoryResponse(BaseModel):
    conversation_id: str
    messages: list[MessageOut] = Field(default_factory=list, description="Oldest first.")


class ConversationsResponse(BaseModel):
    conversation_ids: list[str] = Field(default_factory=list, description="Conversations with stored history.")
