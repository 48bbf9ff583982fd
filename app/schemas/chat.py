from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field
from app.db.models.chat import ConversationType, MessageType, NotificationType, PresenceStatus

class ChatAttachment(BaseModel):
    id: str
    name: str
    type: str
    size: int
    url: str
    data_url: Optional[str] = None

class ConversationCreate(BaseModel):
    type: ConversationType
    participants: List[str] = []
    name: Optional[str] = None
    task_id: Optional[str] = None
    case_id: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = []

class Conversation(BaseModel):
    id: str
    type: ConversationType
    name: Optional[str] = None
    participants: List[str]
    last_message_id: Optional[str] = None
    last_activity: datetime
    is_archived: bool
    created_by: str
    task_id: Optional[str] = None
    case_id: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class MessageCreate(BaseModel):
    content: str
    attachments: List[ChatAttachment] = []
    reply_to_id: Optional[str] = None

class MessageUpdate(BaseModel):
    content: str = Field(..., min_length=1)

class Message(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    message_type: MessageType
    attachments: List[ChatAttachment] = []
    reply_to_id: Optional[str] = None
    is_edited: bool
    read_by: List[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class MarkReadRequest(BaseModel):
    message_id: Optional[str] = None

class TypingRequest(BaseModel):
    is_typing: bool

class TypingIndicator(BaseModel):
    conversation_id: str
    user_id: str
    is_typing: bool = True
    timestamp: datetime

class Notification(BaseModel):
    id: str
    user_id: str
    conversation_id: str
    message_id: str
    type: NotificationType
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True

class PresenceUpdate(BaseModel):
    status: PresenceStatus
    activity: Optional[str] = None

class Presence(BaseModel):
    user_id: str
    status: PresenceStatus
    last_seen: datetime
    current_activity: Optional[str] = None

    class Config:
        from_attributes = True

class NotificationPreferences(BaseModel):
    desktop: bool = True
    sound: bool = True
    mentions: bool = True
    direct_messages: bool = True

class PrivacyPreferences(BaseModel):
    read_receipts: bool = True
    typing_indicators: bool = True
    online_status: bool = True

class ChatSettings(BaseModel):
    user_id: str
    notifications: NotificationPreferences = NotificationPreferences()
    privacy: PrivacyPreferences = PrivacyPreferences()
    blocked_users: List[str] = []

    class Config:
        from_attributes = True

class ChatSettingsUpdate(BaseModel):
    notifications: Optional[NotificationPreferences] = None
    privacy: Optional[PrivacyPreferences] = None
