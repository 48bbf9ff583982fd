from sqlalchemy import Column, String, Text, DateTime, Float, JSON, Enum as SQLEnum
from enum import Enum
import uuid
from app.core.database import Base
from app.core.form_config import ClientType
from app.utils.timestamps import utcnow

class CaseStatus(str, Enum):
    pending_submission = "Pending Submission"
    information_submitted = "Information Submitted"
    under_review = "Under Review"
    additional_info_required = "Additional Info Required"
    approved = "Approved"
    rejected = "Rejected"

class ClientCase(Base):
    """
    One onboarding case per client.

    Uploaded documents are part of the case aggregate and are stored inline
    as a JSON list of records carrying their data URI.
    """
    __tablename__ = "client_cases"

    id = Column(String(64), primary_key=True, default=lambda: f"case-{uuid.uuid4().hex[:12]}")
    client_id = Column(String(64), nullable=False, index=True)
    client_name = Column(Text, nullable=True)
    client_type = Column(SQLEnum(ClientType, values_callable=lambda e: [m.value for m in e]), nullable=True)
    form_data = Column(JSON, nullable=False, default=dict)
    documents = Column(JSON, nullable=False, default=list)
    status = Column(
        SQLEnum(CaseStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CaseStatus.pending_submission,
    )
    assigned_staff_id = Column(String(64), nullable=True, index=True)

    # Latest risk assessment snapshot
    risk_level = Column(Text, nullable=True)
    risk_confidence_score = Column(Float, nullable=True)
    risk_reasoning = Column(Text, nullable=True)
    risk_assessed_at = Column(DateTime, nullable=True)

    submitted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    @property
    def risk_assessment(self):
        if self.risk_level is None:
            return None
        return {
            "risk_level": self.risk_level,
            "confidence_score": self.risk_confidence_score,
            "reasoning": self.risk_reasoning,
            "assessed_at": self.risk_assessed_at,
        }
