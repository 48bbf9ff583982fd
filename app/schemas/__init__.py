from app.schemas.user import User, UserCreate, UserUpdate, UserRole
from app.schemas.auth import LoginRequest, RegisterRequest, Token, TokenPayload
from app.schemas.case import (
    ClientCase, CaseStatus, DocumentUpload, DocumentUploadRequest, OnboardingOutcome,
    OnboardingError, OnboardingStep
)
from app.schemas.task import Task, TaskCreate, TaskUpdate
from app.schemas.audit import AuditLog, AuditLogCreate, AuditLogFilter, AuditLogSummary, EntityType
from app.schemas.profile import (
    ClientProfile, ClientProfileCreate, ClientProfileUpdate,
    StaffProfile, StaffProfileCreate, StaffProfileUpdate
)
from app.schemas.chat import Conversation, ConversationCreate, Message, MessageCreate, Notification, Presence
from app.schemas.risk import RiskAssessmentRequest, RiskAssessmentResult, RiskLevel

# Export all schemas
__all__ = [
    'User', 'UserCreate', 'UserUpdate', 'UserRole',
    'LoginRequest', 'RegisterRequest', 'Token', 'TokenPayload',
    'ClientCase', 'CaseStatus', 'DocumentUpload', 'DocumentUploadRequest', 'OnboardingOutcome',
    'OnboardingError', 'OnboardingStep',
    'Task', 'TaskCreate', 'TaskUpdate',
    'AuditLog', 'AuditLogCreate', 'AuditLogFilter', 'AuditLogSummary', 'EntityType',
    'ClientProfile', 'ClientProfileCreate', 'ClientProfileUpdate',
    'StaffProfile', 'StaffProfileCreate', 'StaffProfileUpdate',
    'Conversation', 'ConversationCreate', 'Message', 'MessageCreate', 'Notification', 'Presence',
    'RiskAssessmentRequest', 'RiskAssessmentResult', 'RiskLevel'
]
