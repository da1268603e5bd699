from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Optional
from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive values; they are always UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]


class Sender(str, Enum):
    USER = "USER"
    AI = "AI"


class CamelModel(BaseModel):
    """Fields are snake_case in Python and camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ConversationMetadata(CamelModel):
    model_config = ConfigDict(extra="allow")

    started_at: UTCDateTime = Field(default_factory=lambda: datetime.now(timezone.utc))
    llm_provider: Optional[str] = None


class Message(CamelModel):
    id: str
    conversation_id: str
    sender: Sender
    text: str
    created_at: UTCDateTime


class Conversation(CamelModel):
    id: str
    session_id: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    metadata: ConversationMetadata = Field(default_factory=ConversationMetadata)


class ConversationDetail(Conversation):
    messages: List[Message] = Field(default_factory=list)


class ChatResponse(CamelModel):
    reply: str
    session_id: str
    message_id: str
    conversation_id: str
