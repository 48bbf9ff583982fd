from sqlalchemy import Column, String, Text, DateTime, Boolean, Integer, JSON, Enum as SQLEnum
from enum import Enum
import uuid
from app.core.database import Base
from app.utils.timestamps import utcnow

class ConversationType(str, Enum):
    direct = "direct"
    group = "group"
    task = "task"
    case = "case"

class MessageType(str, Enum):
    text = "text"
    file = "file"
    system = "system"

class NotificationType(str, Enum):
    mention = "mention"
    new_message = "new_message"
    file_shared = "file_shared"

class PresenceStatus(str, Enum):
    online = "online"
    away = "away"
    busy = "busy"
    offline = "offline"

class ChatConversation(Base):
    __tablename__ = "chat_conversations"

    id = Column(String(64), primary_key=True, default=lambda: f"conv-{uuid.uuid4().hex[:12]}")
    type = Column(SQLEnum(ConversationType), nullable=False)
    name = Column(Text, nullable=True)
    # Insertion order is kept for display
    participants = Column(JSON, nullable=False, default=list)
    last_message_id = Column(String(64), nullable=True)
    last_activity = Column(DateTime, nullable=False, default=utcnow)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_by = Column(String(64), nullable=False)
    task_id = Column(String(64), nullable=True)
    case_id = Column(String(64), nullable=True)
    description = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(64), primary_key=True, default=lambda: f"msg-{uuid.uuid4().hex}")
    conversation_id = Column(String(64), nullable=False, index=True)
    # Append order within the conversation
    position = Column(Integer, nullable=False)
    sender_id = Column(String(64), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(SQLEnum(MessageType), nullable=False, default=MessageType.text)
    attachments = Column(JSON, nullable=False, default=list)
    reply_to_id = Column(String(64), nullable=True)
    is_edited = Column(Boolean, nullable=False, default=False)
    read_by = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

class ChatNotification(Base):
    __tablename__ = "chat_notifications"

    id = Column(String(64), primary_key=True, default=lambda: f"notif-{uuid.uuid4().hex}")
    user_id = Column(String(64), nullable=False, index=True)
    conversation_id = Column(String(64), nullable=False, index=True)
    message_id = Column(String(64), nullable=False)
    type = Column(SQLEnum(NotificationType), nullable=False, default=NotificationType.new_message)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

class UserPresence(Base):
    __tablename__ = "user_presence"

    user_id = Column(String(64), primary_key=True)
    status = Column(SQLEnum(PresenceStatus), nullable=False, default=PresenceStatus.offline)
    last_seen = Column(DateTime, nullable=False, default=utcnow)
    current_activity = Column(Text, nullable=True)

class ChatSettings(Base):
    __tablename__ = "chat_settings"

    user_id = Column(String(64), primary_key=True)
    notifications = Column(JSON, nullable=False, default=dict)
    privacy = Column(JSON, nullable=False, default=dict)
    blocked_users = Column(JSON, nullable=False, default=list)
