from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Annotated

from marketplace.schemas.common import ObjectIdStr


class MessageStatus(str, Enum):
    sent = "sent"
    seen = "seen"


class ChatMessage(BaseModel):
    sender_id: str
    message: str
    timestamp: str
    is_image: bool = False
    status: MessageStatus = MessageStatus.sent


class ChatRead(BaseModel):
    id: str
    product_id: str
    product_name: Optional[str] = None
    client_id: str
    client_name: Optional[str] = None
    seller_id: str
    messages: List[ChatMessage] = []
    created_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")


class ChatSummary(BaseModel):
    id: str
    product_name: str
    client_name: str
    latest_message: str
    latest_message_time: str


class ChatInitiate(BaseModel):
    product_id: ObjectIdStr


class ChatInitiated(BaseModel):
    chat_id: str


class FileUploaded(BaseModel):
    file_path: str


# -------- socket payloads --------
class SendMessage(BaseModel):
    chat_id: str
    sender_id: Annotated[str, Field(min_length=1)]
    message: Annotated[str, Field(min_length=1)]
    timestamp: Optional[str] = None
    is_image: bool = False


class SeenMessage(BaseModel):
    chat_id: str
    message_timestamp: Annotated[str, Field(min_length=1)]
