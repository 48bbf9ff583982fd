from typing import List, Any, Optional
from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import get_current_active_user
from app.core.config import settings
from app.core.database import get_db
from app.db.models import ConversationType, User
from app.schemas.chat import (
    ChatAttachment, ChatSettings, ChatSettingsUpdate, Conversation, ConversationCreate,
    MarkReadRequest, Message, MessageCreate, MessageUpdate, Notification, Presence,
    PresenceUpdate, TypingIndicator, TypingRequest
)
from app.services.chat_service import (
    ChatError, ChatService, ChatStoreError, ConversationNotFoundError, MessageNotFoundError,
    NotParticipantError, TypingIndicatorRegistry, build_attachment
)

logger = logging.getLogger(__name__)
router = APIRouter()

def get_typing_registry(request: Request) -> TypingIndicatorRegistry:
    """The typing indicator store created with the application."""
    return request.app.state.typing_registry

def get_chat_service(
    db: AsyncSession = Depends(get_db),
    typing: TypingIndicatorRegistry = Depends(get_typing_registry)
) -> ChatService:
    return ChatService(db, typing)

def raise_for_chat_error(error: ChatError):
    if isinstance(error, (ConversationNotFoundError, MessageNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, NotParticipantError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, ChatStoreError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    raise HTTPException(status_code=code, detail=str(error))

@router.get("/conversations", response_model=List[Conversation])
async def list_conversations(
    *,
    service: ChatService = Depends(get_chat_service),
    type: Optional[ConversationType] = Query(None, description="Filter by conversation type"),
    include_archived: bool = Query(False),
    current_user: User = Depends(get_current_active_user)
) -> Any:
    """
    Conversations of the current user, most recent activity first.
    """
    return await service.list_conversations(current_user.id, include_archived=include_archived, type=type)

@router.post("/conversations", response_model=Conversation, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    *,
    service: ChatService = Depends(get_chat_service),
    conversation_in: ConversationCreate,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    """
    Start a conversation. The creator is always a participant.
    """
    try:
        return await service.create_conversation(
            current_user.id,
            conversation_in.type,
            conversation_in.participants,
            name=conversation_in.name,
            task_id=conversation_in.task_id,
            case_id=conversation_in.case_id,
            description=conversation_in.description,
            tags=conversation_in.tags,
        )
    except ChatError as e:
        raise_for_chat_error(e)

@router.get("/conversations/{conversation_id}", response_model=Conversation)
async def read_conversation(
    *,
    service: ChatService = Depends(get_chat_service),
    conversation_id: str,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    try:
        return await service.get_conversation_for_user(conversation_id, current_user.id)
    except ChatError as e:
        raise_for_chat_error(e)

@router.post("/conversations/{conversation_id}/archive", response_model=Conversation)
async def archive_conversation(
    *,
    service: ChatService = Depends(get_chat_service),
    conversation_id: str,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    try:
        return await service.archive_conversation(conversation_id, current_user.id)
    except ChatError as e:
        raise_for_chat_error(e)

@router.get("/conversations/{conversation_id}/messages", response_model=List[Message])
async def list_messages(
    *,
    service: ChatService = Depends(get_chat_service),
    conversation_id: str,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    """
    Messages of a conversation in the order they were sent.
    """
    try:
        await service.get_conversation_for_user(conversation_id, current_user.id)
    except ChatError as e:
        raise_for_chat_error(e)
    return await service.list_messages(conversation_id)

@router.post("/conversations/{conversation_id}/messages", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_message(
    *,
    service: ChatService = Depends(get_chat_service),
    conversation_id: str,
    message_in: MessageCreate,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    try:
        return await service.send_message(
            conversation_id,
            current_user.id,
            message_in.content,
            attachments=message_in.attachments,
            reply_to_id=message_in.reply_to_id,
        )
    except ChatError as e:
        raise_for_chat_error(e)

@router.post("/conversations/{conversation_id}/read")
async def mark_as_read(
    *,
    service: ChatService = Depends(get_chat_service),
    conversation_id: str,
    request: MarkReadRequest,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    """
    Mark one message, or the whole conversation, as read.
    """
    try:
        updated = await service.mark_as_read(conversation_id, current_user.id, request.message_id)
    except ChatError as e:
        raise_for_chat_error(e)
    return {"updated": updated}

@router.post("/conversations/{conversation_id}/typing", response_model=List[TypingIndicator])
async def set_typing(
    *,
    service: ChatService = Depends(get_chat_service),
    conversation_id: str,
    request: TypingRequest,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    try:
        return await service.set_typing(conversation_id, current_user.id, request.is_typing)
    except ChatError as e:
        raise_for_chat_error(e)

@router.get("/conversations/{conversation_id}/typing", response_model=List[TypingIndicator])
async def get_typing_users(
    *,
    service: ChatService = Depends(get_chat_service),
    conversation_id: str,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    """
    Other participants currently typing.
    """
    try:
        return await service.get_typing(conversation_id, current_user.id)
    except ChatError as e:
        raise_for_chat_error(e)

@router.put("/messages/{message_id}", response_model=Message)
async def edit_message(
    *,
    service: ChatService = Depends(get_chat_service),
    message_id: str,
    message_in: MessageUpdate,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    try:
        return await service.edit_message(message_id, current_user.id, message_in.content)
    except ChatError as e:
        raise_for_chat_error(e)

@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    *,
    service: ChatService = Depends(get_chat_service),
    message_id: str,
    current_user: User = Depends(get_current_active_user)
) -> None:
    try:
        await service.delete_message(message_id, current_user.id)
    except ChatError as e:
        raise_for_chat_error(e)

@router.get("/search", response_model=List[Message])
async def search_messages(
    *,
    service: ChatService = Depends(get_chat_service),
    q: str = Query(..., min_length=1, description="Text to search for"),
    conversation_id: Optional[str] = Query(None),
    current_user: User = Depends(get_current_active_user)
) -> Any:
    """
    Case-insensitive search over the user's messages, newest first.
    """
    try:
        return await service.search_messages(current_user.id, q, conversation_id)
    except ChatError as e:
        raise_for_chat_error(e)

@router.post("/attachments", response_model=ChatAttachment, status_code=status.HTTP_201_CREATED)
async def upload_attachment(
    *,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_active_user)
) -> Any:
    """
    Turn a file into an attachment that can be sent with a message.
    """
    if file.size is not None and file.size > settings.MAX_UPLOAD_SIZE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File is too large"
        )
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File is too large"
        )
    return build_attachment(file.filename or "attachment", file.content_type or "application/octet-stream", content)

@router.get("/notifications", response_model=List[Notification])
async def list_notifications(
    *,
    service: ChatService = Depends(get_chat_service),
    unread_only: bool = Query(False),
    current_user: User = Depends(get_current_active_user)
) -> Any:
    return await service.list_notifications(current_user.id, unread_only=unread_only)

@router.get("/notifications/unread-count")
async def unread_count(
    *,
    service: ChatService = Depends(get_chat_service),
    current_user: User = Depends(get_current_active_user)
) -> Any:
    return {"count": await service.unread_count(current_user.id)}

@router.put("/presence", response_model=Presence)
async def update_presence(
    *,
    service: ChatService = Depends(get_chat_service),
    presence_in: PresenceUpdate,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    try:
        return await service.update_presence(current_user.id, presence_in.status, presence_in.activity)
    except ChatError as e:
        raise_for_chat_error(e)

@router.get("/presence", response_model=List[Presence])
async def get_presence(
    *,
    service: ChatService = Depends(get_chat_service),
    user_ids: Optional[List[str]] = Query(None),
    current_user: User = Depends(get_current_active_user)
) -> Any:
    return await service.get_presence(user_ids)

@router.get("/settings", response_model=ChatSettings)
async def read_chat_settings(
    *,
    service: ChatService = Depends(get_chat_service),
    current_user: User = Depends(get_current_active_user)
) -> Any:
    try:
        return await service.get_chat_settings(current_user.id)
    except ChatError as e:
        raise_for_chat_error(e)

@router.put("/settings", response_model=ChatSettings)
async def update_chat_settings(
    *,
    service: ChatService = Depends(get_chat_service),
    settings_in: ChatSettingsUpdate,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    try:
        return await service.update_chat_settings(current_user.id, settings_in.model_dump(exclude_unset=True))
    except ChatError as e:
        raise_for_chat_error(e)

@router.post("/settings/blocked/{user_id}", response_model=ChatSettings)
async def block_user(
    *,
    service: ChatService = Depends(get_chat_service),
    user_id: str,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot block yourself"
        )
    try:
        return await service.block_user(current_user.id, user_id)
    except ChatError as e:
        raise_for_chat_error(e)

@router.delete("/settings/blocked/{user_id}", response_model=ChatSettings)
async def unblock_user(
    *,
    service: ChatService = Depends(get_chat_service),
    user_id: str,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    try:
        return await service.unblock_user(current_user.id, user_id)
    except ChatError as e:
        raise_for_chat_error(e)
