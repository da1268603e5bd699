import random
import string
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from ..database.db import Database
from ..database.models import ChatResponse, ConversationDetail, ConversationMetadata, Conversation, Sender
from ..errors import NotFoundError, ValidationError
from ..logger import get_logger
from .llm.base import BaseLLM
from .prompt import build_prompt

logger = get_logger(__name__)

MAX_MESSAGE_CHARS = 5000
HISTORY_LIMIT = 10
LLM_DEGRADED_SECONDS = 60

FALLBACK_REPLY = (
    "I apologize, but I'm having trouble accessing our knowledge base. "
    "Please try again in a moment, or contact support@spurstore.com for immediate assistance."
)

_SESSION_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id() -> str:
    """Timestamp plus a short random suffix. Unique enough, not a secret."""
    suffix = "".join(random.choices(_SESSION_ALPHABET, k=9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


def validate_message(text: Optional[str]) -> str:
    """Return the trimmed message or raise ValidationError."""
    if text is None or not text.strip():
        raise ValidationError("Message cannot be empty", code="EMPTY_MESSAGE")
    text = text.strip()
    if len(text) > MAX_MESSAGE_CHARS:
        raise ValidationError(
            f"Message is too long. Please limit to {MAX_MESSAGE_CHARS} characters.",
            code="MESSAGE_TOO_LONG",
        )
    return text


class ChatService:
    def __init__(
        self,
        store: Database,
        llm: BaseLLM,
        degraded_seconds: float = LLM_DEGRADED_SECONDS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.llm = llm
        self.degraded_window = timedelta(seconds=degraded_seconds)
        self._clock = clock
        self.last_llm_error: Optional[str] = None
        self.last_llm_error_at: Optional[datetime] = None
        self.fallback_count = 0

    async def process_message(self, text: str, session_id: Optional[str] = None) -> ChatResponse:
        text = validate_message(text)
        conversation = self._get_or_create_conversation(session_id)

        self.store.add_message(conversation.id, Sender.USER, text)
        history = self.store.get_recent_messages(conversation.id, limit=HISTORY_LIMIT)

        reply = await self._generate_reply(conversation, history, text)

        ai_message = self.store.add_message(conversation.id, Sender.AI, reply)
        self.store.touch_conversation(conversation.id)

        logger.info("Processed message for conversation %s", conversation.id)
        return ChatResponse(
            reply=reply,
            session_id=conversation.session_id,
            message_id=ai_message.id,
            conversation_id=conversation.id,
        )

    async def _generate_reply(self, conversation: Conversation, history, text: str) -> str:
        prompt = build_prompt(history, text)
        try:
            reply = await self.llm.generate(prompt)
        except Exception as e:  # any backend failure degrades to the fallback reply
            logger.warning(
                "LLM unavailable for conversation %s (%s), using fallback reply",
                conversation.id,
                getattr(e, "code", type(e).__name__),
            )
            self.last_llm_error = getattr(e, "code", type(e).__name__)
            self.last_llm_error_at = self._clock()
            self.fallback_count += 1
            return FALLBACK_REPLY
        self.last_llm_error = None
        return reply

    def _get_or_create_conversation(self, session_id: Optional[str]) -> Conversation:
        if session_id:
            conversation = self.store.get_conversation_by_session(session_id)
            if conversation:
                return conversation
            logger.info("Unknown session %s, starting a new conversation", session_id)

        conversation = self.store.create_conversation(
            generate_session_id(),
            ConversationMetadata(llm_provider=self.llm.provider),
        )
        logger.info("Created new conversation: %s", conversation.id)
        return conversation

    def get_conversation(self, session_id: str) -> ConversationDetail:
        conversation = self.store.get_conversation_detail(session_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        return conversation

    def llm_degraded(self) -> bool:
        """True while the latest generation failed and the failure is still recent."""
        if self.last_llm_error is None:
            return False
        return self._clock() - self.last_llm_error_at < self.degraded_window

    def get_health(self) -> Dict[str, Any]:
        database_ok = self.store.ping()
        health: Dict[str, Any] = {
            "database": "healthy" if database_ok else "unhealthy",
            "llm": "degraded" if self.llm_degraded() else "healthy",
            "llmProvider": self.llm.provider,
            "llmFallbacks": self.fallback_count,
            "timestamp": self._clock().isoformat(),
        }
        if self.last_llm_error is not None:
            health["llmLastError"] = self.last_llm_error
            health["llmLastErrorAt"] = self.last_llm_error_at.isoformat()
        return health
