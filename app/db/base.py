from app.core.database import Base
from app.db.models.user import User
from app.db.models.case import ClientCase
from app.db.models.task import Task
from app.db.models.audit import AuditLog
from app.db.models.profile import ClientProfile, StaffProfile
from app.db.models.chat import ChatConversation, ChatMessage, ChatNotification, UserPresence, ChatSettings

# All models are imported here for SQLAlchemy to discover them
