"""
Upload validation shared by the OCR and speech-to-text endpoints.
"""

import logging

from fastapi import HTTPException, UploadFile, status

from smartkas.config import settings

logger = logging.getLogger(__name__)


async def read_validated_upload(upload: UploadFile, media_prefix: str, label: str) -> bytes:
    """
    Read an uploaded file after checking its type and size.

    Args:
        upload: The uploaded file
        media_prefix: Required content-type prefix ("image/" or "audio/")
        label: Human-readable file kind for error messages

    Returns:
        The file contents

    Raises:
        HTTPException: 400 for a wrong type, unreadable file, empty file or
                       a file larger than MAX_UPLOAD_MB
    """
    if not upload.content_type or not upload.content_type.startswith(media_prefix):
        logger.warning(f"Invalid content type for {label}: {upload.content_type}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "invalid_file_type",
                "details": f"File must be {label} ({media_prefix}*)"
            }
        )

    try:
        data = await upload.read()
    except Exception as e:
        logger.error(f"Failed to read uploaded {label}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "file_read_error",
                "details": f"Could not read uploaded {label}"
            }
        )

    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "empty_file", "details": f"Uploaded {label} is empty"}
        )

    max_size_bytes = settings.MAX_UPLOAD_MB * 1024 * 1024
    if len(data) > max_size_bytes:
        logger.warning(f"{label} too large: {len(data)} bytes")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "file_too_large",
                "details": f"File must be smaller than {settings.MAX_UPLOAD_MB}MB"
            }
        )

    return data
