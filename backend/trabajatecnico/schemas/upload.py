"""Schemas for /api/upload."""

from pydantic import Field

from trabajatecnico.schemas.common import CamelModel


class StoredFile(CamelModel):
    filename: str = Field(description="Stored name, relative to the upload root")
    original_name: str
    size: int
    mimetype: str
    cv_uploaded: bool = True


class CVUploadResponse(CamelModel):
    message: str
    data: StoredFile
