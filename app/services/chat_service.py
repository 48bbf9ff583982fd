"""
Conversation and message store.

Conversations hold an ordered participant list that always includes their
creator. Messages are appended in order, carry a ``read_by`` list that only
grows, and fan out one notification per other participant when sent.
Typing indicators are ephemeral and live in memory only.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple
from datetime import datetime, timedelta
import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.models import (
    ChatConversation, ChatMessage, ChatNotification, ChatSettings, UserPresence,
    ConversationType, MessageType, NotificationType, PresenceStatus
)
from app.schemas.chat import (
    ChatAttachment, NotificationPreferences, PrivacyPreferences, TypingIndicator
)
from app.utils.data_uri import encode_data_uri
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


class ChatError(Exception):
    """Base class for rejected chat operations."""


class ConversationNotFoundError(ChatError):
    pass


class MessageNotFoundError(ChatError):
    pass


class NotParticipantError(ChatError):
    pass


class InvalidMessageError(ChatError):
    pass


class ChatStoreError(ChatError):
    """The database rejected a chat write; the session was rolled back."""


class TypingIndicatorRegistry:
    """
    In-memory typing indicators keyed by (conversation, user).

    An indicator expires ``ttl`` after it was last set; setting it again
    restarts the countdown and clearing it removes it immediately.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], datetime] = utcnow):
        seconds = settings.TYPING_INDICATOR_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.ttl = timedelta(seconds=seconds)
        self.clock = clock
        self._entries: Dict[Tuple[str, str], datetime] = {}

    def set(self, conversation_id: str, user_id: str, is_typing: bool) -> None:
        key = (conversation_id, user_id)
        if is_typing:
            self._entries[key] = self.clock()
        else:
            self._entries.pop(key, None)

    def _purge(self) -> None:
        now = self.clock()
        expired = [key for key, started in self._entries.items() if now - started >= self.ttl]
        for key in expired:
            del self._entries[key]

    def active(self, conversation_id: str) -> List[TypingIndicator]:
        self._purge()
        return [
            TypingIndicator(conversation_id=conv_id, user_id=user_id, is_typing=True, timestamp=started)
            for (conv_id, user_id), started in self._entries.items()
            if conv_id == conversation_id
        ]

    def clear(self) -> None:
        self._entries.clear()


def _dedupe(user_ids: List[str]) -> List[str]:
    seen = set()
    ordered = []
    for user_id in user_ids:
        if user_id not in seen:
            seen.add(user_id)
            ordered.append(user_id)
    return ordered


def build_attachment(name: str, mime_type: str, content: bytes) -> ChatAttachment:
    """Turn an uploaded file into an inline attachment."""
    return ChatAttachment(
        id=f"file-{uuid.uuid4().hex[:12]}",
        name=name,
        type=mime_type,
        size=len(content),
        url=f"mock://files/{name}",
        data_url=encode_data_uri(content, mime_type),
    )


class ChatService:
    """Messaging operations over an injected database session."""

    def __init__(
        self,
        db: AsyncSession,
        typing: Optional[TypingIndicatorRegistry] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.typing = typing if typing is not None else TypingIndicatorRegistry(clock=clock)
        self.clock = clock

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error while flushing chat changes: {e}")
            raise ChatStoreError("Failed to save chat changes.") from e

    async def _commit(self, *instances) -> None:
        """Commit the unit of work and reload ``instances``; roll back on failure."""
        try:
            await self.db.commit()
            for instance in instances:
                await self.db.refresh(instance)
        except SQLAlchemyError as e:
            await self.db.rollback()
            saved = ", ".join(type(instance).__name__ for instance in instances) or "chat changes"
            logger.error(f"Database error while saving {saved}: {e}")
            raise ChatStoreError("Failed to save chat changes.") from e

    # Conversations

    async def create_conversation(
        self,
        creator_id: str,
        type: ConversationType,
        participants: List[str],
        name: Optional[str] = None,
        task_id: Optional[str] = None,
        case_id: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None
    ) -> ChatConversation:
        now = self.clock()
        conversation = ChatConversation(
            type=ConversationType(type),
            name=name,
            participants=_dedupe(list(participants) + [creator_id]),
            last_activity=now,
            is_archived=False,
            created_by=creator_id,
            task_id=task_id,
            case_id=case_id,
            description=description,
            tags=list(tags or []),
            created_at=now,
            updated_at=now,
        )
        self.db.add(conversation)
        await self._commit(conversation)
        logger.info(f"Conversation {conversation.id} ({conversation.type.value}) created by {creator_id}")
        return conversation

    async def get_conversation(self, conversation_id: str) -> Optional[ChatConversation]:
        result = await self.db.execute(select(ChatConversation).where(ChatConversation.id == conversation_id))
        return result.scalar_one_or_none()

    async def get_conversation_for_user(self, conversation_id: str, user_id: str) -> ChatConversation:
        conversation = await self.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(f"Conversation not found: {conversation_id}")
        if user_id not in conversation.participants:
            raise NotParticipantError(f"User {user_id} is not a participant of {conversation_id}")
        return conversation

    async def list_conversations(
        self,
        user_id: str,
        include_archived: bool = False,
        type: Optional[ConversationType] = None
    ) -> List[ChatConversation]:
        """Conversations the user takes part in, most recent activity first."""
        query = select(ChatConversation)
        if not include_archived:
            query = query.where(ChatConversation.is_archived.is_(False))
        if type is not None:
            query = query.where(ChatConversation.type == ConversationType(type))
        result = await self.db.execute(query.order_by(ChatConversation.last_activity.desc()))
        return [c for c in result.scalars().all() if user_id in c.participants]

    async def get_conversations_by_type(self, user_id: str, type: ConversationType) -> List[ChatConversation]:
        return await self.list_conversations(user_id, include_archived=False, type=type)

    async def archive_conversation(self, conversation_id: str, user_id: str) -> ChatConversation:
        conversation = await self.get_conversation_for_user(conversation_id, user_id)
        conversation.is_archived = True
        conversation.updated_at = self.clock()
        await self._commit(conversation)
        logger.info(f"Conversation {conversation_id} archived by {user_id}")
        return conversation

    # Messages

    async def list_messages(self, conversation_id: str) -> List[ChatMessage]:
        result = await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.position)
        )
        return list(result.scalars().all())

    async def get_message(self, message_id: str) -> Optional[ChatMessage]:
        result = await self.db.execute(select(ChatMessage).where(ChatMessage.id == message_id))
        return result.scalar_one_or_none()

    async def _blocked_by(self, user_ids: List[str], sender_id: str) -> set:
        if not user_ids:
            return set()
        result = await self.db.execute(select(ChatSettings).where(ChatSettings.user_id.in_(user_ids)))
        return {s.user_id for s in result.scalars().all() if sender_id in (s.blocked_users or [])}

    async def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        attachments: Optional[List[ChatAttachment]] = None,
        reply_to_id: Optional[str] = None
    ) -> ChatMessage:
        """
        Append a message, bump the conversation's activity and notify every
        other participant (except those who blocked the sender).
        """
        conversation = await self.get_conversation_for_user(conversation_id, sender_id)
        attachments = list(attachments or [])
        if not content.strip() and not attachments:
            raise InvalidMessageError("A message needs content or at least one attachment.")

        if reply_to_id is not None:
            target = await self.get_message(reply_to_id)
            if target is None or target.conversation_id != conversation_id:
                raise InvalidMessageError(f"Reply target {reply_to_id} is not a message of this conversation.")

        last_position = await self.db.scalar(
            select(func.max(ChatMessage.position)).where(ChatMessage.conversation_id == conversation_id)
        )
        now = self.clock()
        message = ChatMessage(
            conversation_id=conversation_id,
            position=(last_position or 0) + 1,
            sender_id=sender_id,
            content=content,
            message_type=MessageType.file if attachments else MessageType.text,
            attachments=[attachment.model_dump(mode="json") for attachment in attachments],
            reply_to_id=reply_to_id,
            is_edited=False,
            read_by=[sender_id],
            created_at=now,
            updated_at=now,
        )
        self.db.add(message)
        await self._flush()

        conversation.last_message_id = message.id
        conversation.last_activity = now
        conversation.updated_at = now

        recipients = [p for p in conversation.participants if p != sender_id]
        blocked = await self._blocked_by(recipients, sender_id)
        notification_type = NotificationType.file_shared if attachments else NotificationType.new_message
        for participant_id in recipients:
            if participant_id in blocked:
                continue
            self.db.add(ChatNotification(
                user_id=participant_id,
                conversation_id=conversation_id,
                message_id=message.id,
                type=notification_type,
                is_read=False,
                created_at=now,
            ))

        await self._commit(message)
        logger.info(f"Message {message.id} sent to {conversation_id} by {sender_id}")
        return message

    async def mark_as_read(self, conversation_id: str, user_id: str, message_id: Optional[str] = None) -> int:
        """
        Add the user to ``read_by`` of one message, or of every message in the
        conversation, and mark the matching notifications read. Returns the
        number of messages whose receipts changed.
        """
        await self.get_conversation_for_user(conversation_id, user_id)

        messages = await self.list_messages(conversation_id)
        if message_id is not None:
            messages = [m for m in messages if m.id == message_id]
            if not messages:
                raise MessageNotFoundError(f"Message not found in conversation: {message_id}")

        changed = 0
        for message in messages:
            if user_id not in (message.read_by or []):
                message.read_by = list(message.read_by or []) + [user_id]
                changed += 1

        query = select(ChatNotification).where(
            ChatNotification.conversation_id == conversation_id,
            ChatNotification.user_id == user_id,
            ChatNotification.is_read.is_(False),
        )
        if message_id is not None:
            query = query.where(ChatNotification.message_id == message_id)
        result = await self.db.execute(query)
        for notification in result.scalars().all():
            notification.is_read = True

        await self._commit()
        return changed

    async def edit_message(self, message_id: str, editor_id: str, new_content: str) -> ChatMessage:
        """Replace the content in place; position and creation time are kept."""
        message = await self.get_message(message_id)
        if message is None:
            raise MessageNotFoundError(f"Message not found: {message_id}")
        if message.sender_id != editor_id:
            raise NotParticipantError("Only the sender can edit a message.")
        if not new_content.strip():
            raise InvalidMessageError("Message content cannot be empty.")

        message.content = new_content
        message.is_edited = True
        message.updated_at = self.clock()
        await self._commit(message)
        return message

    async def delete_message(self, message_id: str, actor_id: str) -> None:
        """Hard delete; no tombstone is kept."""
        message = await self.get_message(message_id)
        if message is None:
            raise MessageNotFoundError(f"Message not found: {message_id}")
        if message.sender_id != actor_id:
            raise NotParticipantError("Only the sender can delete a message.")

        conversation_id = message.conversation_id
        await self.db.delete(message)
        await self._flush()

        conversation = await self.get_conversation(conversation_id)
        if conversation is not None and conversation.last_message_id == message_id:
            previous = await self.db.execute(
                select(ChatMessage.id)
                .where(ChatMessage.conversation_id == conversation_id)
                .order_by(ChatMessage.position.desc())
                .limit(1)
            )
            conversation.last_message_id = previous.scalar_one_or_none()

        await self._commit()
        logger.info(f"Message {message_id} deleted by {actor_id}")

    async def search_messages(
        self,
        user_id: str,
        query: str,
        conversation_id: Optional[str] = None
    ) -> List[ChatMessage]:
        """Case-insensitive substring search, newest first."""
        if conversation_id is not None:
            await self.get_conversation_for_user(conversation_id, user_id)
            conversation_ids = [conversation_id]
        else:
            conversations = await self.list_conversations(user_id, include_archived=True)
            conversation_ids = [c.id for c in conversations]
        if not conversation_ids:
            return []

        result = await self.db.execute(
            select(ChatMessage).where(ChatMessage.conversation_id.in_(conversation_ids))
        )
        needle = query.lower()
        matches = [m for m in result.scalars().all() if needle in m.content.lower()]
        return sorted(matches, key=lambda m: (m.created_at, m.position), reverse=True)

    # Typing indicators

    async def set_typing(self, conversation_id: str, user_id: str, is_typing: bool) -> List[TypingIndicator]:
        await self.get_conversation_for_user(conversation_id, user_id)
        self.typing.set(conversation_id, user_id, is_typing)
        return self.typing.active(conversation_id)

    async def get_typing(self, conversation_id: str, user_id: str) -> List[TypingIndicator]:
        await self.get_conversation_for_user(conversation_id, user_id)
        return [indicator for indicator in self.typing.active(conversation_id) if indicator.user_id != user_id]

    # Notifications

    async def list_notifications(self, user_id: str, unread_only: bool = False) -> List[ChatNotification]:
        query = select(ChatNotification).where(ChatNotification.user_id == user_id)
        if unread_only:
            query = query.where(ChatNotification.is_read.is_(False))
        result = await self.db.execute(query.order_by(ChatNotification.created_at.desc()))
        return list(result.scalars().all())

    async def unread_count(self, user_id: str) -> int:
        count = await self.db.scalar(
            select(func.count()).select_from(ChatNotification).where(
                ChatNotification.user_id == user_id,
                ChatNotification.is_read.is_(False),
            )
        )
        return count or 0

    # Presence

    async def update_presence(
        self,
        user_id: str,
        status: PresenceStatus,
        activity: Optional[str] = None
    ) -> UserPresence:
        presence = await self.db.get(UserPresence, user_id)
        if presence is None:
            presence = UserPresence(user_id=user_id)
            self.db.add(presence)
        presence.status = PresenceStatus(status)
        presence.last_seen = self.clock()
        presence.current_activity = activity
        await self._commit(presence)
        return presence

    async def get_presence(self, user_ids: Optional[List[str]] = None) -> List[UserPresence]:
        query = select(UserPresence)
        if user_ids:
            query = query.where(UserPresence.user_id.in_(user_ids))
        result = await self.db.execute(query.order_by(UserPresence.user_id))
        return list(result.scalars().all())

    # Settings

    async def get_chat_settings(self, user_id: str) -> ChatSettings:
        chat_settings = await self.db.get(ChatSettings, user_id)
        if chat_settings is None:
            chat_settings = ChatSettings(
                user_id=user_id,
                notifications=NotificationPreferences().model_dump(),
                privacy=PrivacyPreferences().model_dump(),
                blocked_users=[],
            )
            self.db.add(chat_settings)
            await self._commit(chat_settings)
        return chat_settings

    async def update_chat_settings(self, user_id: str, update: Dict[str, Any]) -> ChatSettings:
        chat_settings = await self.get_chat_settings(user_id)
        if update.get("notifications") is not None:
            chat_settings.notifications = {**chat_settings.notifications, **update["notifications"]}
        if update.get("privacy") is not None:
            chat_settings.privacy = {**chat_settings.privacy, **update["privacy"]}
        await self._commit(chat_settings)
        return chat_settings

    async def block_user(self, user_id: str, blocked_id: str) -> ChatSettings:
        chat_settings = await self.get_chat_settings(user_id)
        if blocked_id not in chat_settings.blocked_users:
            chat_settings.blocked_users = list(chat_settings.blocked_users) + [blocked_id]
            await self._commit(chat_settings)
        return chat_settings

    async def unblock_user(self, user_id: str, blocked_id: str) -> ChatSettings:
        chat_settings = await self.get_chat_settings(user_id)
        if blocked_id in chat_settings.blocked_users:
            chat_settings.blocked_users = [u for u in chat_settings.blocked_users if u != blocked_id]
            await self._commit(chat_settings)
        return chat_settings
