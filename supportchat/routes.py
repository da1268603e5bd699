from typing import Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .errors import ChatError, ServiceError, ValidationError
from .logger import get_logger
from .services.chat import ChatService

logger = get_logger(__name__)

router = APIRouter(prefix="/api")

REQUIRED_MESSAGE_ERROR = "Message is required and must be a string"


class ChatRequest(BaseModel):
    message: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


@router.post("/chat/message")
@router.post("/message")
async def send_message(body: ChatRequest, service: ChatService = Depends(get_chat_service)):
    if body.message is None:
        raise ValidationError(REQUIRED_MESSAGE_ERROR)

    try:
        result = await service.process_message(body.message, body.session_id)
    except ChatError:
        raise
    except Exception as e:
        raise ServiceError(f"Error processing chat message: {e}") from e

    return {"success": True, "data": result.to_json()}


@router.get("/conversation/{session_id}")
async def get_conversation(session_id: str, service: ChatService = Depends(get_chat_service)):
    try:
        conversation = service.get_conversation(session_id)
    except ChatError:
        raise
    except Exception as e:
        raise ServiceError(f"Error loading conversation: {e}") from e

    return {"success": True, "data": conversation.to_json()}


@router.get("/health")
async def health_check(service: ChatService = Depends(get_chat_service)):
    try:
        health = service.get_health()
    except Exception:
        logger.exception("Health check failed")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "error": "Service unavailable"},
        )

    is_healthy = health["database"] == "healthy" and health["llm"] == "healthy"
    return JSONResponse(
        status_code=200 if is_healthy else 503,
        content={"status": "healthy" if is_healthy else "unhealthy", **health},
    )
