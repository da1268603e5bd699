import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    String,
    Text,
    create_engine,
    func,
    select,
    text as sql_text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, relationship
from sqlalchemy.pool import StaticPool

from ..errors import ServiceError
from ..logger import get_logger
from .models import Conversation, ConversationDetail, ConversationMetadata, Message, Sender

logger = get_logger(__name__)

Base = declarative_base()


class ConversationModel(Base):
    __tablename__ = "conversations"

    id = Column(String, primary_key=True)
    session_id = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, index=True)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=False, default=dict)

    messages = relationship(
        "MessageModel",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="MessageModel.created_at",
    )


class MessageModel(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True)
    conversation_id = Column(
        String,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender = Column(SAEnum(Sender, name="sender"), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    conversation = relationship("ConversationModel", back_populates="messages")


class _MonotonicClock:
    """UTC timestamps that never repeat or go backwards within the process.

    Message order is creation order, and two inserts can land in the same
    clock tick.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last: Optional[datetime] = None

    def now(self) -> datetime:
        with self._lock:
            current = datetime.now(timezone.utc)
            if self._last is not None and current <= self._last:
                current = self._last + timedelta(microseconds=1)
            self._last = current
            return current


def _parse_metadata(db_conversation: ConversationModel) -> ConversationMetadata:
    try:
        return ConversationMetadata.model_validate(db_conversation.meta)
    except PydanticValidationError as e:
        raise ServiceError(
            f"Stored metadata for conversation {db_conversation.id} is malformed"
        ) from e


def _conversation_from_db(db_conversation: ConversationModel) -> Conversation:
    return Conversation(
        id=db_conversation.id,
        session_id=db_conversation.session_id,
        created_at=db_conversation.created_at,
        updated_at=db_conversation.updated_at,
        metadata=_parse_metadata(db_conversation),
    )


def _message_from_db(db_message: MessageModel) -> Message:
    return Message(
        id=db_message.id,
        conversation_id=db_message.conversation_id,
        sender=db_message.sender,
        text=db_message.text,
        created_at=db_message.created_at,
    )


class Database:
    """Conversation and message store.

    Every method opens a short-lived session; nothing spans more than one
    statement group, so callers get no transaction across calls.
    """

    def __init__(self, db_url: str = "sqlite:///conversations.db"):
        connect_args = {}
        engine_kwargs = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            if db_url in ("sqlite://", "sqlite:///:memory:"):
                # in-memory databases live only as long as their one connection
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
        self._clock = _MonotonicClock()
        Base.metadata.create_all(self.engine)

    def close(self):
        self.engine.dispose()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error("Database ping failed: %s", e)
            return False

    # ------------------------------------------------------------------
    # CONVERSATIONS
    # ------------------------------------------------------------------
    def get_conversation_by_session(self, session_id: str) -> Optional[Conversation]:
        with Session(self.engine) as session:
            db_conversation = (
                session.query(ConversationModel).filter_by(session_id=session_id).first()
            )
            if not db_conversation:
                return None
            return _conversation_from_db(db_conversation)

    def create_conversation(
        self, session_id: str, metadata: Optional[ConversationMetadata] = None
    ) -> Conversation:
        metadata = metadata or ConversationMetadata()
        with Session(self.engine) as session:
            now = self._clock.now()
            db_conversation = ConversationModel(
                id=str(uuid.uuid4()),
                session_id=session_id,
                created_at=now,
                updated_at=now,
                meta=metadata.model_dump(mode="json", by_alias=True),
            )
            session.add(db_conversation)
            session.commit()
            return _conversation_from_db(db_conversation)

    def touch_conversation(self, conversation_id: str) -> None:
        with Session(self.engine) as session:
            db_conversation = session.get(ConversationModel, conversation_id)
            if not db_conversation:
                raise ServiceError(f"Conversation {conversation_id} not found")
            db_conversation.updated_at = self._clock.now()
            session.commit()

    def get_conversation_detail(self, session_id: str) -> Optional[ConversationDetail]:
        with Session(self.engine) as session:
            db_conversation = (
                session.query(ConversationModel).filter_by(session_id=session_id).first()
            )
            if not db_conversation:
                return None
            conversation = _conversation_from_db(db_conversation)
            messages = [_message_from_db(m) for m in db_conversation.messages]
            return ConversationDetail(**conversation.model_dump(), messages=messages)

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and, through the cascade, its messages."""
        with Session(self.engine) as session:
            db_conversation = session.get(ConversationModel, conversation_id)
            if not db_conversation:
                return False
            session.delete(db_conversation)
            session.commit()
            return True

    # ------------------------------------------------------------------
    # MESSAGES
    # ------------------------------------------------------------------
    def add_message(self, conversation_id: str, sender: Sender, text: str) -> Message:
        with Session(self.engine) as session:
            db_message = MessageModel(
                id=str(uuid.uuid4()),
                conversation_id=conversation_id,
                sender=sender,
                text=text,
                created_at=self._clock.now(),
            )
            session.add(db_message)
            session.commit()
            return _message_from_db(db_message)

    def get_recent_messages(self, conversation_id: str, limit: int = 10) -> List[Message]:
        """Return the last ``limit`` messages, oldest first."""
        with Session(self.engine) as session:
            rows = session.scalars(
                select(MessageModel)
                .where(MessageModel.conversation_id == conversation_id)
                .order_by(MessageModel.created_at.desc())
                .limit(limit)
            ).all()
            return [_message_from_db(m) for m in reversed(rows)]

    def count_messages(self, conversation_id: str) -> int:
        with Session(self.engine) as session:
            return session.scalar(
                select(func.count())
                .select_from(MessageModel)
                .where(MessageModel.conversation_id == conversation_id)
            )
