"""
Development fixtures: demo users, two onboarding cases and two conversations.
"""

from datetime import datetime, timedelta
from typing import Optional
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.form_config import ClientType
from app.db.models import (
    CaseStatus, ChatConversation, ChatMessage, ClientCase, ConversationType, MessageType, User, UserRole
)
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

MOCK_USERS = [
    {"id": "client1", "email": "client@example.com", "role": UserRole.client, "name": "Test Client"},
    {"id": "staff1", "email": "staff@example.com", "role": UserRole.staff, "name": "Test Staff"},
    {"id": "dev-client", "email": "dev-client@test.com", "role": UserRole.client, "name": "Development Client"},
    {"id": "dev-staff", "email": "dev-staff@test.com", "role": UserRole.staff, "name": "Development Staff"},
    {"id": "admin1", "email": "admin@example.com", "role": UserRole.admin, "name": "Test Admin"},
]

MOCK_CASES = [
    {
        "id": "case1",
        "client_id": "client1",
        "client_name": "Test Client Individual",
        "client_type": ClientType.individual,
        "form_data": {
            "full_name": "Test Client Individual",
            "id_number": "123456789",
            "residential_address": "123 Main St, Anytown",
        },
        "status": CaseStatus.pending_submission,
    },
    {
        "id": "case2",
        "client_id": "dev-client",
        "client_name": "Development Client Company",
        "client_type": ClientType.company,
        "form_data": {
            "registered_company_name": "Dev Test Company Ltd",
            "registration_number": "2023/123456/07",
            "registered_address": "456 Business Ave, Corporate City",
        },
        "status": CaseStatus.information_submitted,
    },
]


async def seed_mock_data(db: AsyncSession, now: Optional[datetime] = None) -> bool:
    """
    Insert the development fixtures into an empty database.

    Returns False, leaving the database untouched, if any user exists.
    """
    existing = await db.scalar(select(func.count()).select_from(User))
    if existing:
        logger.info("Database already contains users, skipping mock data")
        return False

    now = now or utcnow()

    for user in MOCK_USERS:
        db.add(User(**user, is_active=True, created_at=now, updated_at=now))

    for case in MOCK_CASES:
        db.add(ClientCase(
            **case,
            documents=[],
            submitted_at=now if case["status"] == CaseStatus.information_submitted else None,
            created_at=now,
            updated_at=now,
        ))

    db.add(ChatConversation(
        id="conv-1",
        type=ConversationType.direct,
        participants=["client1", "staff1"],
        last_message_id="msg-2",
        last_activity=now - timedelta(hours=1),
        created_by="client1",
        tags=[],
        created_at=now - timedelta(hours=24),
        updated_at=now,
    ))
    db.add(ChatConversation(
        id="conv-2",
        type=ConversationType.case,
        name="Case Discussion - Test Client",
        participants=["client1", "staff1", "admin1"],
        last_message_id="msg-3",
        last_activity=now - timedelta(minutes=30),
        created_by="staff1",
        case_id="case1",
        tags=[],
        created_at=now - timedelta(hours=12),
        updated_at=now,
    ))

    messages = [
        ("msg-1", "conv-1", 1, "client1", "Hi, I have a question about my onboarding documents.",
         ["client1", "staff1"], timedelta(hours=2)),
        ("msg-2", "conv-1", 2, "staff1", "Hello! I'd be happy to help. What specific question do you have?",
         ["staff1"], timedelta(hours=1)),
        ("msg-3", "conv-2", 1, "staff1", "This case requires additional documentation review.",
         ["staff1", "admin1"], timedelta(minutes=30)),
    ]
    for message_id, conversation_id, position, sender_id, content, read_by, age in messages:
        db.add(ChatMessage(
            id=message_id,
            conversation_id=conversation_id,
            position=position,
            sender_id=sender_id,
            content=content,
            message_type=MessageType.text,
            attachments=[],
            is_edited=False,
            read_by=read_by,
            created_at=now - age,
            updated_at=now - age,
        ))

    await db.commit()
    logger.info(f"Seeded {len(MOCK_USERS)} users, {len(MOCK_CASES)} cases and 2 conversations")
    return True
