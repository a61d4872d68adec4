"""
TrabajaTecnico Backend — Project Route Handlers
================================================

What:  Public project board and the company's own projects.

    GET  /api/projects              → open projects, paginated (no auth)
    GET  /api/projects/my-projects  → the company's projects
    GET  /api/projects/stats        → the company's project counters
    POST /api/projects              → 201 {message, projectId}
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from trabajatecnico.auth import CurrentUser, get_current_user
from trabajatecnico.database import get_db_session
from trabajatecnico.schemas.common import ErrorResponse
from trabajatecnico.schemas.project import (
    MyProjectsResponse,
    ProjectCreate,
    ProjectCreatedResponse,
    ProjectListResponse,
    ProjectStats,
)
from trabajatecnico.services.project_service import project_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["Projects"])

_COMPANY_ONLY = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Only companies", "model": ErrorResponse},
}


@router.get("", response_model=ProjectListResponse, summary="Open projects")
async def list_projects(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectListResponse:
    return await project_service.list_open(db, page=page, limit=limit)


@router.get(
    "/my-projects",
    response_model=MyProjectsResponse,
    responses=_COMPANY_ONLY,
    summary="My company's projects",
)
async def my_projects(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MyProjectsResponse:
    return await project_service.list_for_company(db, user)


@router.get(
    "/stats",
    response_model=ProjectStats,
    responses=_COMPANY_ONLY,
    summary="My company's project counters",
)
async def project_stats(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectStats:
    return await project_service.stats(db, user)


@router.post(
    "",
    status_code=201,
    response_model=ProjectCreatedResponse,
    responses={
        400: {"description": "Invalid project data", "model": ErrorResponse},
        **_COMPANY_ONLY,
    },
    summary="Publish a project",
)
async def create_project(
    payload: ProjectCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectCreatedResponse:
    project = await project_service.create(db, user, payload)
    return ProjectCreatedResponse(
        message="Project created successfully",
        project_id=project.id,
    )
