"""
TrabajaTecnico Backend — Application Route Handlers
====================================================

What:  HTTP surface of the application lifecycle.
Who:   Technicians apply and withdraw; companies accept or reject.

    POST /api/applications                 → 201 {message, applicationId}
    PUT  /api/applications/{id}/status     → 200 {message, status}
    PUT  /api/applications/{id}/withdraw   → 200 {message}
    GET  /api/applications/my              → technician's own applications
    GET  /api/applications/stats           → counts per status
    GET  /api/applications/received        → company's incoming applications
"""

import logging

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from trabajatecnico.auth import CurrentUser, get_current_user
from trabajatecnico.database import get_db_session
from trabajatecnico.dependencies import get_application_service
from trabajatecnico.schemas.application import (
    ApplicationCreate,
    ApplicationCreatedResponse,
    ApplicationStats,
    MyApplicationsResponse,
    ReceivedApplicationsResponse,
    StatusUpdate,
    StatusUpdateResponse,
)
from trabajatecnico.schemas.common import ErrorResponse, MessageResponse
from trabajatecnico.services.application_service import ApplicationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/applications", tags=["Applications"])

_ERRORS = {
    400: {"description": "Validation or lifecycle rule violated", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Wrong role or not the owner", "model": ErrorResponse},
    404: {"description": "Not found", "model": ErrorResponse},
}


@router.post(
    "",
    status_code=201,
    response_model=ApplicationCreatedResponse,
    responses=_ERRORS,
    summary="Apply to a project",
)
async def create_application(
    payload: ApplicationCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: ApplicationService = Depends(get_application_service),
) -> ApplicationCreatedResponse:
    """
    Requires the technician role and an uploaded CV. Notification and mail
    failures after the insert do not change the 201.
    """
    application = await service.submit_application(db, user, payload)
    return ApplicationCreatedResponse(
        message="Application sent successfully",
        application_id=application.id,
    )


@router.put(
    "/{application_id}/status",
    response_model=StatusUpdateResponse,
    responses=_ERRORS,
    summary="Accept or reject an application (project owner)",
)
async def update_application_status(
    body: StatusUpdate,
    application_id: int = Path(gt=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: ApplicationService = Depends(get_application_service),
) -> StatusUpdateResponse:
    status = await service.update_status(db, user, application_id, body.status, body.message)
    return StatusUpdateResponse(message="Application status updated", status=status)


@router.put(
    "/{application_id}/withdraw",
    response_model=MessageResponse,
    responses=_ERRORS,
    summary="Withdraw a pending application (applicant)",
)
async def withdraw_application(
    application_id: int = Path(gt=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: ApplicationService = Depends(get_application_service),
) -> MessageResponse:
    await service.withdraw(db, user, application_id)
    return MessageResponse(message="Application withdrawn successfully")


@router.get("/my", response_model=MyApplicationsResponse, summary="My applications")
async def my_applications(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: ApplicationService = Depends(get_application_service),
) -> MyApplicationsResponse:
    return await service.list_for_technician(db, user)


@router.get("/stats", response_model=ApplicationStats, summary="My application counts")
async def application_stats(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: ApplicationService = Depends(get_application_service),
) -> ApplicationStats:
    return await service.stats_for_technician(db, user)


@router.get(
    "/received",
    response_model=ReceivedApplicationsResponse,
    responses={403: _ERRORS[403]},
    summary="Applications received on my projects (companies)",
)
async def received_applications(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: ApplicationService = Depends(get_application_service),
) -> ReceivedApplicationsResponse:
    return await service.list_received(db, user)
