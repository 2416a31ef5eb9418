"""
Question endpoints for the recipe assistant.

Provides /questions to ask a question within a (new or existing) thread and
/threads/{threadId}/messages to read a thread back.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel, Field

from ..config import Settings, get_settings
from ..errors import (
    ConversationError,
    ModelCallFailure,
    PartialPersistFailure,
    StorageFailure,
    ThreadNotFound,
)
from ..services.conversation_service import ConversationService
from ..utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


class QuestionRequest(BaseModel):
    """Request model for asking a question."""

    question: str = Field(
        ...,
        description="Natural-language question about recipes",
        min_length=1,
        max_length=10000,
        json_schema_extra={"example": "What seasonal recipes do you have?"},
    )
    threadId: Optional[str] = Field(
        None,
        description="Thread to continue; omit to start a new conversation",
        min_length=1,
        max_length=64,
        json_schema_extra={"example": "3f2b9c1e-8d4a-4c4e-9a57-1b2f0c7d9e10"},
    )


class QuestionResponse(BaseModel):
    """Answer plus the trace of what the agent did."""

    logs: List[str] = Field(..., description="Run log of tool calls and errors")
    response: str = Field(..., description="Assistant answer")
    threadId: str = Field(..., description="Thread the exchange was stored in")


class MessageView(BaseModel):
    id: str
    role: str
    content: str
    timestamp: datetime


class ThreadMessagesResponse(BaseModel):
    """A thread with its messages, oldest first."""

    threadId: str
    status: str
    createdAt: datetime
    lastUpdatedAt: datetime
    messages: List[MessageView]


# Status code and error code for each failure in the taxonomy
ERROR_STATUS = [
    (ThreadNotFound, status.HTTP_404_NOT_FOUND, "THREAD_NOT_FOUND"),
    (PartialPersistFailure, status.HTTP_500_INTERNAL_SERVER_ERROR, "PARTIAL_PERSIST"),
    (ModelCallFailure, status.HTTP_502_BAD_GATEWAY, "MODEL_PROVIDER_ERROR"),
    (StorageFailure, status.HTTP_503_SERVICE_UNAVAILABLE, "STORAGE_UNAVAILABLE"),
]


def to_http_exception(error: ConversationError) -> HTTPException:
    """Map a conversation failure to an HTTPException carrying the run log."""
    for error_type, status_code, error_code in ERROR_STATUS:
        if isinstance(error, error_type):
            break
    else:
        status_code, error_code = status.HTTP_500_INTERNAL_SERVER_ERROR, "APP_UNEXPECTED"

    detail = {"error": error_code, "message": error.message, "logs": error.run_log}
    if isinstance(error, PartialPersistFailure):
        detail["threadId"] = error.thread_id
    return HTTPException(status_code=status_code, detail=detail)


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> Optional[str]:
    """
    Verify API key from request header.

    Authentication is disabled when no API key is configured.
    """
    if settings.api_key is None:
        return None

    if not x_api_key or x_api_key != settings.api_key:
        logger.warning(
            "Invalid API key attempt",
            provided_key_prefix=x_api_key[:8] if x_api_key else None,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )

    return x_api_key


def get_conversation_service(request: Request) -> ConversationService:
    """Conversation service built at startup."""
    service = getattr(request.app.state, "conversation_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "SERVICE_NOT_READY",
                "message": "Conversation service is not initialized",
            },
        )
    return service


@router.post(
    "/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_200_OK,
    summary="Ask the recipe assistant",
    description="Ask a question in a new or existing thread; the agent may query the knowledge graph before answering",
    response_description="Assistant answer with run log and thread ID",
)
async def post_question(
    body: QuestionRequest,
    api_key: Optional[str] = Depends(verify_api_key),
    service: ConversationService = Depends(get_conversation_service),  # noqa: B008
) -> QuestionResponse:
    """
    Ask a question.

    Starts a new thread when threadId is omitted. Failures return the run
    log collected up to the point of failure.
    """
    try:
        result = await service.ask(body.question, body.threadId)
    except ConversationError as e:
        raise to_http_exception(e) from e

    return QuestionResponse(
        logs=result.run_log,
        response=result.answer_text,
        threadId=result.thread_id,
    )


@router.get(
    "/threads/{thread_id}/messages",
    response_model=ThreadMessagesResponse,
    status_code=status.HTTP_200_OK,
    summary="Read a thread",
    description="Returns the thread metadata and its messages, oldest first",
)
async def get_thread_messages(
    thread_id: str,
    api_key: Optional[str] = Depends(verify_api_key),
    service: ConversationService = Depends(get_conversation_service),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ThreadMessagesResponse:
    """Return a thread and its most recent messages."""
    try:
        thread = await service.threads.get(thread_id)
        if thread is None:
            raise ThreadNotFound(thread_id)
        history = await service.messages.load_history(
            thread_id, limit=settings.thread_message_limit
        )
    except ConversationError as e:
        raise to_http_exception(e) from e

    return ThreadMessagesResponse(
        threadId=thread.id,
        status=thread.status,
        createdAt=thread.created_at,
        lastUpdatedAt=thread.last_updated_at,
        messages=[
            MessageView(
                id=m.id,
                role=m.role,
                content=m.content,
                timestamp=m.created_at,
            )
            for m in history
        ],
    )
