"""
TrabajaTecnico Backend — Upload Route Handlers
===============================================

What:  POST /api/upload/cv stores a technician's CV and marks the profile.
How:   FileService validates and writes the file; the profile repository
       records the stored name. If recording fails the file is removed.

Request: multipart/form-data with a ``cv`` field (.pdf, .doc, .docx).
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trabajatecnico.auth import CurrentUser, get_current_user
from trabajatecnico.database import get_db_session
from trabajatecnico.exceptions import DatabaseError, ForbiddenError
from trabajatecnico.schemas.common import ErrorResponse
from trabajatecnico.schemas.upload import CVUploadResponse, StoredFile
from trabajatecnico.services.file_service import file_service
from trabajatecnico.services.profile_repository import technician_profiles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["Uploads"])


@router.post(
    "/cv",
    response_model=CVUploadResponse,
    responses={
        400: {"description": "Unsupported, empty or oversized file", "model": ErrorResponse},
        403: {"description": "Only technicians upload CVs", "model": ErrorResponse},
    },
    summary="Upload my CV",
)
async def upload_cv(
    cv: UploadFile = File(..., description="CV document (PDF, DOC or DOCX)"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CVUploadResponse:
    if not user.is_technician:
        raise ForbiddenError(message="Only technicians can upload a CV")

    try:
        content = await cv.read()
    finally:
        await cv.close()

    original_name = cv.filename or "cv"
    logger.info("CV upload from %d: %s (%d bytes)", user.user_id, original_name, len(content))

    path, stored_name, mime_type = await file_service.validate_and_store(original_name, content)
    try:
        await technician_profiles.record_cv(db, user.user_id, stored_name)
    except SQLAlchemyError as e:
        await file_service.cleanup_file(path)
        raise DatabaseError(
            message="Could not save your CV. Please try again.",
            context={"user_id": user.user_id},
        ) from e

    return CVUploadResponse(
        message="CV uploaded successfully",
        data=StoredFile(
            filename=stored_name,
            original_name=original_name,
            size=len(content),
            mimetype=mime_type,
            cv_uploaded=True,
        ),
    )
