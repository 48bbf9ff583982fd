from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.core.form_config import ClientType, DocumentRequirement, FieldConfig
from app.db.models.case import CaseStatus
from app.schemas.onboarding import OnboardingSubmission

class DocumentUpload(BaseModel):
    id: str
    requirement_id: str
    name: str
    type: str
    data_url: str
    size: int
    description: Optional[str] = None
    uploaded_at: datetime

class DocumentUploadRequest(BaseModel):
    """JSON upload of a file that has already been read into a data URI."""
    requirement_id: str
    name: str
    data_url: str
    description: Optional[str] = None

class RiskAssessmentSnapshot(BaseModel):
    risk_level: str
    confidence_score: float
    reasoning: str
    assessed_at: datetime

class ClientCase(BaseModel):
    id: str
    client_id: str
    client_name: Optional[str] = None
    client_type: Optional[ClientType] = None
    form_data: Dict[str, Any] = {}
    documents: List[DocumentUpload] = []
    status: CaseStatus
    assigned_staff_id: Optional[str] = None
    risk_assessment: Optional[RiskAssessmentSnapshot] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class SelectClientTypeRequest(BaseModel):
    client_type: ClientType
    client_name: Optional[str] = None

class SaveProgressRequest(BaseModel):
    form_data: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("form_data", "formData"))

class SubmitRequest(BaseModel):
    form_data: OnboardingSubmission = Field(validation_alias=AliasChoices("form_data", "formData"))

class CaseStatusUpdate(BaseModel):
    status: CaseStatus

class CaseAssignment(BaseModel):
    staff_id: str

class OnboardingSchema(BaseModel):
    client_type: ClientType
    fields: List[FieldConfig]
    document_requirements: List[DocumentRequirement]

class RequirementStatus(BaseModel):
    requirement: DocumentRequirement
    is_met: bool
    document_ids: List[str] = []

class OnboardingError(str, Enum):
    client_type_missing = "client_type_missing"
    case_not_found = "case_not_found"
    case_locked = "case_locked"
    invalid_form_data = "invalid_form_data"
    missing_documents = "missing_documents"
    unknown_requirement = "unknown_requirement"
    invalid_file_type = "invalid_file_type"
    file_too_large = "file_too_large"
    invalid_file = "invalid_file"
    document_not_found = "document_not_found"
    invalid_status = "invalid_status"

class OnboardingStep(str, Enum):
    client_type = "client_type"
    details = "details"
    documents = "documents"

class OnboardingOutcome(BaseModel):
    """Result of an onboarding action. Failures leave the case unchanged."""
    success: bool
    case: Optional[ClientCase] = None
    error: Optional[OnboardingError] = None
    message: Optional[str] = None
    step: Optional[OnboardingStep] = None
    missing_requirements: List[str] = []
    field_errors: List[Dict[str, Any]] = []

    @field_validator("case", mode="before")
    @classmethod
    def load_case(cls, v):
        if v is None or isinstance(v, (ClientCase, dict)):
            return v
        return ClientCase.model_validate(v)
