"""Customer chat endpoint."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from catalog_service.api.deps import get_chat_service
from catalog_service.api.schemas import CamelModel
from catalog_service.services.chat import ChatService

router = APIRouter()

MAX_MESSAGE_LENGTH = 4000


class ChatRequest(CamelModel):
    """A customer message, optionally continuing a session."""

    message: str = ""
    session_id: str | None = Field(None, max_length=255)


class ChatResponse(CamelModel):
    ok: bool = True
    answer: str
    session_id: str
    sources: list[dict[str, Any]]


@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    """
    Answer a customer question from the synced catalog.

    The question is embedded, matched against product chunks and answered by
    the chat model using only that context.
    """
    message = request.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Missing message")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise HTTPException(status_code=400, detail="Message too long")

    result = await service.answer(message, request.session_id)
    return ChatResponse(
        answer=result.answer,
        session_id=result.session_id,
        sources=result.sources,
    )
