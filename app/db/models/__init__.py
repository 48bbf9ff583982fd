from app.db.models.user import User, UserRole
from app.db.models.case import ClientCase, CaseStatus
from app.db.models.task import Task, TaskStatus, TaskPriority
from app.db.models.audit import AuditLog
from app.db.models.profile import ClientProfile, StaffProfile
from app.db.models.chat import (
    ChatConversation, ChatMessage, ChatNotification, UserPresence, ChatSettings,
    ConversationType, MessageType, NotificationType, PresenceStatus
)

# Export all models and enums
__all__ = [
    'User', 'UserRole',
    'ClientCase', 'CaseStatus',
    'Task', 'TaskStatus', 'TaskPriority',
    'AuditLog',
    'ClientProfile', 'StaffProfile',
    'ChatConversation', 'ChatMessage', 'ChatNotification', 'UserPresence', 'ChatSettings',
    'ConversationType', 'MessageType', 'NotificationType', 'PresenceStatus'
]
