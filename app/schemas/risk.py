from enum import Enum
from typing import List
from pydantic import BaseModel, Field, field_validator
from app.core.form_config import ClientType

class RiskLevel(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"

class RiskAssessmentRequest(BaseModel):
    client_type: ClientType = Field(..., description="The type of client.")
    client_information: str = Field(..., description="The information provided by the client.")
    uploaded_documents: List[str] = Field(
        default_factory=list,
        description=(
            "A list of data URIs of uploaded documents, that must include a MIME type and use "
            "Base64 encoding. Expected format: 'data:<mimetype>;base64,<encoded_data>'."
        ),
    )

class RiskAssessmentResult(BaseModel):
    risk_level: RiskLevel = Field(..., description="The suggested risk level for the client.")
    confidence_score: float = Field(
        ...,
        description="A score between 0 and 1 indicating the confidence in the suggested risk level.",
    )
    reasoning: str = Field(..., description="The reasoning behind the suggested risk level.")

    @field_validator("confidence_score")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        return min(1.0, max(0.0, v))
