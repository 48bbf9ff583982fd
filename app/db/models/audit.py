from sqlalchemy import Column, String, Text, DateTime
import uuid
from app.core.database import Base
from app.utils.timestamps import utcnow

class AuditLog(Base):
    """Write-once record of a mutation. Rows are never updated or deleted."""
    __tablename__ = "audit_logs"

    id = Column(String(64), primary_key=True, default=lambda: f"audit-{uuid.uuid4().hex}")
    user_id = Column(String(64), nullable=False, index=True)
    action = Column(Text, nullable=False)
    entity_type = Column(String(16), nullable=False, index=True)
    entity_id = Column(String(64), nullable=False)
    details = Column(Text, nullable=False, default="")
    ip_address = Column(Text, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
