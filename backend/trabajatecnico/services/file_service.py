"""
TrabajaTecnico Backend — CV File Storage Service
=================================================

What:  Validates, stores, resolves and removes uploaded CV documents.
How:   Extension, size and content-type checks, then an aiofiles write
       under the upload root with a generated filename.
Who:   POST /api/upload/cv (store), ApplicationService via the upload root
       (the operations email attaches the stored CV).

Checks, cheapest first:
    1. Extension:  .pdf, .doc, .docx
    2. Size:       non-empty and at most settings.max_file_size
    3. Content:    python-magic reads the header bytes; a renamed file is
                   rejected even when its extension is allowed
    4. Filename:   ``cv-<uuid><ext>``; no user input reaches the path

Stored names are flat (no sub-directories) because ``technician_profiles.cv_file``
stores the bare filename and the mailer joins it onto the upload root.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import magic

from trabajatecnico.config import settings
from trabajatecnico.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_EXTENSIONS = {".pdf", ".doc", ".docx"}

# Detected MIME type → extensions it may arrive with. DOCX is a zip
# container; older libmagic builds report the generic zip type for it.
ALLOWED_MIME_TYPES = {
    "application/pdf": {".pdf"},
    "application/msword": {".doc"},
    "application/vnd.ms-office": {".doc"},
    "application/x-ole-storage": {".doc"},
    "application/CDFV2": {".doc"},
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": {".docx"},
    "application/zip": {".docx"},
}


class FileService:
    """
    Storage for technician CVs.

    Args:
        upload_root: Override the configured upload root (used in tests).
        max_file_size: Override settings.max_file_size (bytes).
    """

    def __init__(self, upload_root: Optional[str] = None, max_file_size: Optional[int] = None):
        self.upload_root = Path(upload_root or settings.upload_root).resolve()
        self.max_file_size = max_file_size or settings.max_file_size

    def validate_extension(self, filename: str) -> str:
        """Returns the lowercased extension, or raises ValidationError."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="cv",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, size: int) -> None:
        if size == 0:
            raise ValidationError(message="The uploaded file is empty", field="cv")

        if size > self.max_file_size:
            max_mb = self.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"File size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="cv",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

    def validate_mime_type(self, content: bytes, extension: str) -> str:
        """
        Sniffs the content type from the header bytes.

        Returns the detected MIME type.
        Raises ValidationError when it is not a document type matching the
        extension, FileStorageError when libmagic itself fails.
        """
        try:
            mime_type = magic.from_buffer(content[:2048], mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed: %s", e)
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            ) from e

        if extension not in ALLOWED_MIME_TYPES.get(mime_type, set()):
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' does not match a {extension} document. "
                    "Upload a PDF or Word file."
                ),
                field="cv",
                context={"detected_mime": mime_type, "extension": extension},
            )
        return mime_type

    def resolve(self, filename: str) -> Path:
        """
        Absolute path of a stored file.

        Raises ValidationError when the name escapes the upload root.
        """
        path = (self.upload_root / filename).resolve()
        if self.upload_root not in path.parents:
            raise ValidationError(message="Invalid file path", field="filename")
        return path

    async def store_file(self, content: bytes, extension: str) -> Tuple[Path, str]:
        """Writes the content; returns (absolute path, stored filename)."""
        filename = f"cv-{uuid.uuid4()}{extension}"
        path = self.upload_root / filename

        try:
            self.upload_root.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", path, e)
            raise FileStorageError(
                message="Failed to save the uploaded file. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            ) from e

        logger.info("File stored: %s (%d bytes)", filename, len(content))
        return path, filename

    async def cleanup_file(self, path: Path) -> None:
        """Removes a stored file after a failed request; missing files are ignored."""
        try:
            os.remove(path)
            logger.info("Cleaned up file: %s", path.name)
        except FileNotFoundError:
            logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", path, e)

    async def validate_and_store(self, filename: str, content: bytes) -> Tuple[Path, str, str]:
        """
        Full upload pipeline.

        Returns (absolute path, stored filename, detected MIME type).
        """
        ext = self.validate_extension(filename)
        self.validate_size(len(content))
        mime_type = self.validate_mime_type(content, ext)
        path, stored = await self.store_file(content, ext)
        return path, stored, mime_type


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
