from typing import List, Any, Optional, Dict
from fastapi import APIRouter, Depends, HTTPException, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.ai.risk_assessment import RiskAssessmentClient, RiskAssessmentError, assess, get_risk_assessment_client
from app.core.auth import get_current_active_user, get_current_staff_user
from app.core.database import get_db
from app.core.form_config import ClientType, parse_client_type
from app.crud import case as case_crud
from app.db.models import CaseStatus, User, UserRole
from app.schemas.case import CaseAssignment, CaseStatusUpdate, ClientCase, OnboardingError, RequirementStatus
from app.schemas.risk import RiskAssessmentResult
from app.api.api_v1.errors import raise_for_admin_error
from app.services.admin_service import AdminError, AdminService
from app.services.onboarding_service import OnboardingService

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/", response_model=List[ClientCase])
async def get_cases(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
    skip: int = Query(0, ge=0, description="Skip N records"),
    limit: int = Query(100, ge=1, le=500, description="Limit to N records"),
    status: Optional[CaseStatus] = Query(None, description="Filter by case status"),
    client_type: Optional[ClientType] = Query(None, description="Filter by client type"),
    assigned_staff_id: Optional[str] = Query(None, description="Filter by assigned staff member"),
    client_id: Optional[str] = Query(None, description="Filter by client ID")
) -> Any:
    """
    Retrieve cases with optional filtering, most recently updated first.

    Requires staff or admin role.
    """
    logger.info(f"Case list requested by user: {current_user.id}")

    filters: Dict[str, Any] = {}
    if status:
        filters["status"] = status
    if client_type:
        filters["client_type"] = client_type
    if assigned_staff_id:
        filters["assigned_staff_id"] = assigned_staff_id
    if client_id:
        filters["client_id"] = client_id

    cases = await case_crud.get_cases(db, skip=skip, limit=limit, filters=filters)
    logger.info(f"Retrieved {len(cases)} cases")
    return cases

async def _load_case(db: AsyncSession, case_id: str, current_user: User):
    case = await case_crud.get_case(db, case_id=case_id)
    if not case:
        logger.warning(f"Case not found: {case_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Case not found"
        )
    if current_user.role == UserRole.client and current_user.id != case.client_id:
        logger.warning(f"Unauthorized case access attempt by user: {current_user.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have permission to view this case"
        )
    return case

@router.get("/{case_id}", response_model=ClientCase)
async def read_case(
    *,
    db: AsyncSession = Depends(get_db),
    case_id: str = Path(..., description="The ID of the case to retrieve"),
    current_user: User = Depends(get_current_active_user)
) -> Any:
    """
    Get case by ID.

    Clients can only view their own case.
    """
    return await _load_case(db, case_id, current_user)

@router.get("/{case_id}/requirements", response_model=List[RequirementStatus])
async def read_case_requirements(
    *,
    db: AsyncSession = Depends(get_db),
    case_id: str,
    current_user: User = Depends(get_current_active_user)
) -> Any:
    case = await _load_case(db, case_id, current_user)
    return OnboardingService(db).requirement_statuses(case)

@router.put("/{case_id}/status", response_model=ClientCase)
async def update_case_status(
    *,
    db: AsyncSession = Depends(get_db),
    case_id: str,
    status_in: CaseStatusUpdate,
    current_user: User = Depends(get_current_staff_user)
) -> Any:
    """
    Move a case to a review status.

    Requires staff or admin role.
    """
    logger.info(f"Status change of case {case_id} to {status_in.status.value} by {current_user.id}")
    outcome = await OnboardingService(db).set_status(case_id, status_in.status, current_user.id)
    if not outcome.success:
        if outcome.error == OnboardingError.case_not_found:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=outcome.message)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.message)
    return outcome.case

@router.put("/{case_id}/assign", response_model=ClientCase)
async def assign_case(
    *,
    db: AsyncSession = Depends(get_db),
    case_id: str,
    assignment: CaseAssignment,
    current_user: User = Depends(get_current_staff_user)
) -> Any:
    """
    Assign a case to a staff member.

    Requires staff or admin role.
    """
    try:
        return await AdminService(db).assign_case_to_staff(current_user.id, case_id, assignment.staff_id)
    except AdminError as e:
        raise_for_admin_error(e)

@router.post("/{case_id}/risk-assessment", response_model=ClientCase)
async def run_risk_assessment(
    *,
    db: AsyncSession = Depends(get_db),
    case_id: str,
    client: RiskAssessmentClient = Depends(get_risk_assessment_client),
    current_user: User = Depends(get_current_staff_user)
) -> Any:
    """
    Ask the assessment service for a risk level and record it on the case.

    Requires staff or admin role. The case is left unchanged if the service
    fails.
    """
    case = await _load_case(db, case_id, current_user)
    if parse_client_type(case.client_type) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Client type is missing."
        )

    try:
        result: RiskAssessmentResult = await assess(case, client)
    except RiskAssessmentError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    updated = await OnboardingService(db).record_risk_assessment(case_id, result, current_user.id)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record risk assessment"
        )
    return updated
