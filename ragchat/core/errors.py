"""
Errors raised by the conversation services.

Handlers in ragchat/api map them to HTTP: unknown strategy 400, ingestion 500,
dependency down 503, timeout 504.
"""


class ServiceUnavailableError(Exception):
    """A dependency (chat model, embeddings, vector store) is unreachable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnknownStrategyError(ValueError):
    """Raised when a requested strategy kind is not one of the supported kinds."""

    def __init__(self, kind: object) -> None:
        self.kind = kind
        super().__init__(f"Unknown strategy: {kind!r}")


class IngestionError(Exception):
    """Raised when a record could not be serialized, embedded, or stored. Nothing was added."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class RequestTimeoutError(Exception):
    """Raised when a conversation turn did not finish in time. The turn is not stored."""

    def __init__(self, conversation_id: str, timeout: float) -> None:
        self.conversation_id = conversation_id
        self.timeout = timeout
        super().__init__(f"Conversation {conversation_id!r} did not answer within {timeout:g}s")
