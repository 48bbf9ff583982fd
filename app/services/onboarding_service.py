"""
Onboarding case state machine and document manifest.

A client owns at most one case. The case moves through

    Pending Submission -> Information Submitted -> Under Review
        -> Additional Info Required -> (resubmission) Information Submitted
        -> Approved | Rejected

Clients drive the first transitions by saving and submitting; staff set the
review statuses. Validation failures are returned as ``OnboardingOutcome``
values and never leave a partially updated case behind.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union
from datetime import datetime
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.form_config import (
    ClientType, DocumentRequirement, get_document_requirement,
    get_document_requirements_for_client_type, parse_client_type
)
from app.crud import audit as audit_crud
from app.crud import case as case_crud
from app.db.models import CaseStatus, ClientCase
from app.schemas.audit import AuditLogCreate, EntityType
from app.schemas.case import (
    DocumentUpload, OnboardingError, OnboardingOutcome, OnboardingStep, RequirementStatus
)
from app.schemas.onboarding import FormValidationError, validate_draft
from app.schemas.risk import RiskAssessmentResult
from app.utils.data_uri import decode_data_uri, encode_data_uri
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = {CaseStatus.pending_submission, CaseStatus.additional_info_required}

# Statuses staff may set directly
REVIEW_STATUSES = {
    CaseStatus.under_review,
    CaseStatus.additional_info_required,
    CaseStatus.approved,
    CaseStatus.rejected,
}

TERMINAL_STATUSES = {CaseStatus.approved, CaseStatus.rejected}

DocumentLike = Union[DocumentUpload, Mapping[str, Any]]


def _requirement_id(document: DocumentLike) -> str:
    if isinstance(document, Mapping):
        return document["requirement_id"]
    return document.requirement_id


def is_requirement_met(documents: Iterable[DocumentLike], requirement_id: str) -> bool:
    """True when at least one current upload belongs to the requirement."""
    return any(_requirement_id(document) == requirement_id for document in documents)


def missing_requirements(documents: Iterable[DocumentLike], requirements: Iterable[DocumentRequirement]) -> List[str]:
    documents = list(documents)
    return [requirement.id for requirement in requirements if not is_requirement_met(documents, requirement.id)]


def all_requirements_met(documents: Iterable[DocumentLike], requirements: Iterable[DocumentRequirement]) -> bool:
    """Every requirement has an upload. Vacuously true for no requirements."""
    return not missing_requirements(documents, requirements)


def failure(error: OnboardingError, message: str, step: Optional[OnboardingStep] = None, **extra) -> OnboardingOutcome:
    logger.info(f"Onboarding action rejected ({error.value}): {message}")
    return OnboardingOutcome(success=False, error=error, message=message, step=step, **extra)


class OnboardingService:
    """Onboarding operations over an injected database session."""

    def __init__(
        self,
        db: AsyncSession,
        max_upload_size: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.max_upload_size = max_upload_size or settings.MAX_UPLOAD_SIZE_BYTES
        self.clock = clock

    async def get_case_for_client(self, client_id: str) -> Optional[ClientCase]:
        return await case_crud.get_case_by_client(self.db, client_id)

    async def _audit(self, actor_id: str, action: str, case: ClientCase, details: str) -> None:
        entry = await audit_crud.create_audit_log(self.db, AuditLogCreate(
            user_id=actor_id,
            action=action,
            entity_type=EntityType.case,
            entity_id=case.id,
            details=details,
        ))
        if entry is None:
            logger.error(f"Audit entry missing for {action} on case {case.id} by {actor_id}")

    async def _load_editable_case(self, client_id: str) -> Union[ClientCase, OnboardingOutcome]:
        case = await self.get_case_for_client(client_id)
        if case is None:
            return failure(
                OnboardingError.case_not_found,
                "No onboarding case exists for this client.",
                OnboardingStep.client_type,
            )
        if parse_client_type(case.client_type) is None:
            return failure(
                OnboardingError.client_type_missing,
                "Select a client type before continuing.",
                OnboardingStep.client_type,
            )
        if case.status not in EDITABLE_STATUSES:
            return failure(
                OnboardingError.case_locked,
                f"The case cannot be changed while its status is '{case.status.value}'.",
            )
        return case

    async def select_client_type(
        self,
        client_id: str,
        client_type: Union[ClientType, str],
        client_name: Optional[str] = None
    ) -> OnboardingOutcome:
        """
        Create the client's case, or switch an existing case to another type.

        Switching types discards the form data and every uploaded document,
        and puts the case back to ``Pending Submission``.
        """
        parsed = parse_client_type(client_type)
        if parsed is None:
            return failure(
                OnboardingError.client_type_missing,
                f"Unknown client type: {client_type}",
                OnboardingStep.client_type,
            )

        case = await self.get_case_for_client(client_id)
        if case is None:
            case = await case_crud.create_case(self.db, {
                "client_id": client_id,
                "client_name": client_name,
                "client_type": parsed,
                "form_data": {},
                "documents": [],
                "status": CaseStatus.pending_submission,
            })
            if case is None:
                raise RuntimeError(f"Failed to create onboarding case for client {client_id}")
            await self._audit(client_id, "Create Case", case, f"Started {parsed.value} onboarding")
            return OnboardingOutcome(success=True, case=case, step=OnboardingStep.details)

        if parse_client_type(case.client_type) == parsed:
            return OnboardingOutcome(success=True, case=case, step=OnboardingStep.details)

        previous = case.client_type.value if case.client_type else "none"
        discarded = len(case.documents or [])
        update: Dict[str, Any] = {
            "client_type": parsed,
            "form_data": {},
            "documents": [],
            "status": CaseStatus.pending_submission,
            "submitted_at": None,
        }
        if client_name:
            update["client_name"] = client_name
        case = await case_crud.update_case(self.db, case.id, update)
        if case is None:
            raise RuntimeError(f"Failed to reset onboarding case for client {client_id}")

        logger.info(f"Case {case.id} switched from {previous} to {parsed.value}, {discarded} document(s) discarded")
        await self._audit(
            client_id,
            "Change Client Type",
            case,
            f"Client type changed from {previous} to {parsed.value}; {discarded} document(s) discarded",
        )
        return OnboardingOutcome(success=True, case=case, step=OnboardingStep.details)

    async def save_progress(self, client_id: str, form_data: Dict[str, Any]) -> OnboardingOutcome:
        """Persist form data without changing the status."""
        loaded = await self._load_editable_case(client_id)
        if isinstance(loaded, OnboardingOutcome):
            return loaded
        case = loaded

        try:
            cleaned = validate_draft(parse_client_type(case.client_type), form_data)
        except FormValidationError as e:
            return failure(
                OnboardingError.invalid_form_data, str(e), OnboardingStep.details, field_errors=e.errors
            )

        case = await case_crud.update_case(self.db, case.id, {"form_data": cleaned})
        return OnboardingOutcome(success=True, case=case, step=OnboardingStep.details)

    async def submit(self, client_id: str, form_data: Dict[str, Any]) -> OnboardingOutcome:
        """
        Submit the case for review.

        Every document requirement of the client type needs at least one
        upload; otherwise the caller is sent back to the documents step and
        the case is left untouched.
        """
        loaded = await self._load_editable_case(client_id)
        if isinstance(loaded, OnboardingOutcome):
            return loaded
        case = loaded
        client_type = parse_client_type(case.client_type)

        try:
            cleaned = validate_draft(client_type, form_data)
        except FormValidationError as e:
            return failure(
                OnboardingError.invalid_form_data, str(e), OnboardingStep.details, field_errors=e.errors
            )

        requirements = get_document_requirements_for_client_type(client_type)
        missing = missing_requirements(case.documents or [], requirements)
        if missing:
            return failure(
                OnboardingError.missing_documents,
                "Please upload all required documents before submitting.",
                OnboardingStep.documents,
                missing_requirements=missing,
            )

        resubmission = case.status == CaseStatus.additional_info_required
        now = self.clock()
        case = await case_crud.update_case(self.db, case.id, {
            "form_data": cleaned,
            "status": CaseStatus.information_submitted,
            "submitted_at": now,
        })
        if case is None:
            raise RuntimeError(f"Failed to submit onboarding case for client {client_id}")

        await self._audit(
            client_id,
            "Resubmit Onboarding" if resubmission else "Submit Onboarding",
            case,
            f"{client_type.value} onboarding submitted with {len(case.documents)} document(s)",
        )
        return OnboardingOutcome(success=True, case=case)

    async def set_status(self, case_id: str, new_status: Union[CaseStatus, str], actor_id: str) -> OnboardingOutcome:
        """
        Staff transition to one of the review statuses. Any current status
        is accepted as the starting point.
        """
        try:
            target = CaseStatus(new_status)
        except ValueError:
            target = None
        if target not in REVIEW_STATUSES:
            allowed = ", ".join(sorted(status.value for status in REVIEW_STATUSES))
            return failure(OnboardingError.invalid_status, f"Status must be one of: {allowed}")

        case = await case_crud.get_case(self.db, case_id)
        if case is None:
            return failure(OnboardingError.case_not_found, f"Case not found: {case_id}")

        previous = case.status
        if previous in TERMINAL_STATUSES and target != previous:
            logger.warning(f"Case {case_id} moved out of terminal status {previous.value} to {target.value}")

        case = await case_crud.update_case(self.db, case_id, {"status": target})
        if case is None:
            raise RuntimeError(f"Failed to update status of case {case_id}")

        await self._audit(
            actor_id,
            "Update Case Status",
            case,
            f"Case for {case.client_name or case.client_id} changed from {previous.value} to {target.value}",
        )
        return OnboardingOutcome(success=True, case=case)

    def validate_upload(
        self,
        client_type: Optional[ClientType],
        requirement_id: str,
        mime_type: str,
        size: Optional[int]
    ) -> Optional[OnboardingOutcome]:
        """
        Check an upload before its content is read. Returns a failed outcome,
        or None when the file is acceptable.
        """
        requirement = get_document_requirement(client_type, requirement_id)
        if requirement is None:
            return failure(
                OnboardingError.unknown_requirement,
                f"'{requirement_id}' is not a document requirement for this client type.",
                OnboardingStep.documents,
            )
        if mime_type not in requirement.file_types:
            return failure(
                OnboardingError.invalid_file_type,
                f"Invalid file type for {requirement.name}. Allowed: {', '.join(requirement.file_types)}",
                OnboardingStep.documents,
            )
        if size is not None and size > self.max_upload_size:
            limit_mb = self.max_upload_size / (1024 * 1024)
            return failure(
                OnboardingError.file_too_large,
                f"File size exceeds {limit_mb:g}MB limit for {requirement.name}.",
                OnboardingStep.documents,
            )
        return None

    async def add_document(
        self,
        client_id: str,
        requirement_id: str,
        name: str,
        mime_type: str,
        content: bytes,
        description: Optional[str] = None
    ) -> OnboardingOutcome:
        """
        Attach an upload to the client's case. Uploading again for the same
        requirement adds another record instead of replacing the first.
        """
        loaded = await self._load_editable_case(client_id)
        if isinstance(loaded, OnboardingOutcome):
            return loaded
        case = loaded

        rejected = self.validate_upload(parse_client_type(case.client_type), requirement_id, mime_type, len(content))
        if rejected is not None:
            return rejected

        now = self.clock()
        document = DocumentUpload(
            id=f"{requirement_id}-{uuid.uuid4().hex[:16]}",
            requirement_id=requirement_id,
            name=name,
            type=mime_type,
            data_url=encode_data_uri(content, mime_type),
            size=len(content),
            description=description,
            uploaded_at=now,
        )
        documents = list(case.documents or []) + [document.model_dump(mode="json")]
        case = await case_crud.update_case(self.db, case.id, {"documents": documents})
        logger.info(f"Document {document.id} added to case {case.id}")
        return OnboardingOutcome(success=True, case=case, step=OnboardingStep.documents)

    async def add_document_from_data_uri(
        self,
        client_id: str,
        requirement_id: str,
        name: str,
        data_url: str,
        description: Optional[str] = None
    ) -> OnboardingOutcome:
        try:
            mime_type, content = decode_data_uri(data_url)
        except ValueError as e:
            return failure(OnboardingError.invalid_file, str(e), OnboardingStep.documents)
        return await self.add_document(client_id, requirement_id, name, mime_type, content, description)

    async def remove_document(self, client_id: str, document_id: str) -> OnboardingOutcome:
        loaded = await self._load_editable_case(client_id)
        if isinstance(loaded, OnboardingOutcome):
            return loaded
        case = loaded

        documents = [document for document in (case.documents or []) if document["id"] != document_id]
        if len(documents) == len(case.documents or []):
            return failure(OnboardingError.document_not_found, f"Document not found: {document_id}", OnboardingStep.documents)

        case = await case_crud.update_case(self.db, case.id, {"documents": documents})
        return OnboardingOutcome(success=True, case=case, step=OnboardingStep.documents)

    def requirement_statuses(self, case: ClientCase) -> List[RequirementStatus]:
        documents = case.documents or []
        return [
            RequirementStatus(
                requirement=requirement,
                is_met=is_requirement_met(documents, requirement.id),
                document_ids=[document["id"] for document in documents if document["requirement_id"] == requirement.id],
            )
            for requirement in get_document_requirements_for_client_type(case.client_type)
        ]

    async def record_risk_assessment(
        self,
        case_id: str,
        result: RiskAssessmentResult,
        actor_id: str
    ) -> Optional[ClientCase]:
        """Merge an assessment into the case with the time it was made."""
        case = await case_crud.update_case(self.db, case_id, {
            "risk_level": result.risk_level.value,
            "risk_confidence_score": result.confidence_score,
            "risk_reasoning": result.reasoning,
            "risk_assessed_at": self.clock(),
        })
        if case is None:
            return None
        await self._audit(
            actor_id,
            "Risk Assessment",
            case,
            f"Suggested risk {result.risk_level.value} ({result.confidence_score:.0%} confidence)",
        )
        return case
