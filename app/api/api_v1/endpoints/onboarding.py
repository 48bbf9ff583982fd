from typing import List, Any, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import require_roles
from app.core.database import get_db
from app.core.form_config import (
    ClientType, get_document_requirements_for_client_type, get_form_fields_for_client_type,
    parse_client_type
)
from app.db.models import User, UserRole
from app.schemas.case import (
    ClientCase, DocumentUploadRequest, OnboardingError, OnboardingOutcome, OnboardingSchema,
    RequirementStatus, SaveProgressRequest, SelectClientTypeRequest, SubmitRequest
)
from app.services.onboarding_service import OnboardingService, failure

logger = logging.getLogger(__name__)
router = APIRouter()

get_current_client = require_roles(UserRole.client)

ERROR_STATUS_CODES = {
    OnboardingError.client_type_missing: status.HTTP_400_BAD_REQUEST,
    OnboardingError.case_not_found: status.HTTP_404_NOT_FOUND,
    OnboardingError.case_locked: status.HTTP_409_CONFLICT,
    OnboardingError.invalid_form_data: status.HTTP_422_UNPROCESSABLE_ENTITY,
    OnboardingError.missing_documents: status.HTTP_400_BAD_REQUEST,
    OnboardingError.unknown_requirement: status.HTTP_400_BAD_REQUEST,
    OnboardingError.invalid_file_type: status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    OnboardingError.file_too_large: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    OnboardingError.invalid_file: status.HTTP_400_BAD_REQUEST,
    OnboardingError.document_not_found: status.HTTP_404_NOT_FOUND,
    OnboardingError.invalid_status: status.HTTP_400_BAD_REQUEST,
}

def unwrap(outcome: OnboardingOutcome) -> OnboardingOutcome:
    """
    Return successful outcomes; raise failed ones as HTTP errors whose
    detail carries the error code, step and missing requirements.
    """
    if outcome.success:
        return outcome
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(outcome.error, status.HTTP_400_BAD_REQUEST),
        detail=outcome.model_dump(mode="json", exclude={"case", "success"}),
    )

@router.get("/schema/{client_type}", response_model=OnboardingSchema)
async def read_onboarding_schema(client_type: str) -> Any:
    """
    Form fields and document requirements for a client type.
    """
    parsed = parse_client_type(client_type)
    if parsed is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown client type: {client_type}"
        )
    return OnboardingSchema(
        client_type=parsed,
        fields=get_form_fields_for_client_type(parsed),
        document_requirements=get_document_requirements_for_client_type(parsed),
    )

@router.get("/case", response_model=ClientCase)
async def read_my_case(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_client)
) -> Any:
    """
    Get the onboarding case of the logged-in client.
    """
    case = await OnboardingService(db).get_case_for_client(current_user.id)
    if not case:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No onboarding case yet"
        )
    return case

@router.post("/client-type", response_model=OnboardingOutcome)
async def select_client_type(
    *,
    db: AsyncSession = Depends(get_db),
    request: SelectClientTypeRequest,
    current_user: User = Depends(get_current_client)
) -> Any:
    """
    Choose or change the client type.

    Changing the type discards saved form data and uploaded documents.
    """
    logger.info(f"Client {current_user.id} selected client type {request.client_type.value}")
    outcome = await OnboardingService(db).select_client_type(
        current_user.id, request.client_type, request.client_name or current_user.name
    )
    return unwrap(outcome)

@router.put("/progress", response_model=OnboardingOutcome)
async def save_progress(
    *,
    db: AsyncSession = Depends(get_db),
    request: SaveProgressRequest,
    current_user: User = Depends(get_current_client)
) -> Any:
    """
    Save form data without submitting.
    """
    return unwrap(await OnboardingService(db).save_progress(current_user.id, request.form_data))

@router.post("/submit", response_model=OnboardingOutcome)
async def submit_onboarding(
    *,
    db: AsyncSession = Depends(get_db),
    request: SubmitRequest,
    current_user: User = Depends(get_current_client)
) -> Any:
    """
    Submit the case for review.

    The form must be complete for its client type and every document
    requirement needs at least one upload.
    """
    logger.info(f"Onboarding submission by client {current_user.id}")
    form_data = request.form_data.model_dump(exclude_none=True)
    return unwrap(await OnboardingService(db).submit(current_user.id, form_data))

@router.get("/requirements", response_model=List[RequirementStatus])
async def read_requirement_statuses(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_client)
) -> Any:
    """
    Document requirements of the client's type and whether each is met.
    """
    service = OnboardingService(db)
    case = await service.get_case_for_client(current_user.id)
    if not case:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No onboarding case yet"
        )
    return service.requirement_statuses(case)

@router.post("/documents", response_model=OnboardingOutcome, status_code=status.HTTP_201_CREATED)
async def add_document(
    *,
    db: AsyncSession = Depends(get_db),
    request: DocumentUploadRequest,
    current_user: User = Depends(get_current_client)
) -> Any:
    """
    Attach a document sent as a data URI.
    """
    outcome = await OnboardingService(db).add_document_from_data_uri(
        current_user.id, request.requirement_id, request.name, request.data_url, request.description
    )
    return unwrap(outcome)

@router.post("/documents/upload", response_model=OnboardingOutcome, status_code=status.HTTP_201_CREATED)
async def upload_document(
    *,
    db: AsyncSession = Depends(get_db),
    requirement_id: str = Form(...),
    description: Optional[str] = Form(None),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_client)
) -> Any:
    """
    Attach a document sent as a multipart file.

    Type and size are checked before the content is read.
    """
    service = OnboardingService(db)
    case = await service.get_case_for_client(current_user.id)
    client_type: Optional[ClientType] = parse_client_type(case.client_type) if case else None
    if client_type is None:
        unwrap(failure(OnboardingError.client_type_missing, "Select a client type before uploading documents."))

    mime_type = file.content_type or "application/octet-stream"
    rejected = service.validate_upload(client_type, requirement_id, mime_type, file.size)
    if rejected is not None:
        unwrap(rejected)

    content = await file.read()
    outcome = await service.add_document(
        current_user.id, requirement_id, file.filename or requirement_id, mime_type, content, description
    )
    return unwrap(outcome)

@router.delete("/documents/{document_id}", response_model=OnboardingOutcome)
async def remove_document(
    *,
    db: AsyncSession = Depends(get_db),
    document_id: str,
    current_user: User = Depends(get_current_client)
) -> Any:
    """
    Remove one uploaded document.
    """
    return unwrap(await OnboardingService(db).remove_document(current_user.id, document_id))
