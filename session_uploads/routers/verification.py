import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import ValidationError as PydanticValidationError

from session_uploads.schemas.verification import VerifyVideosRequest
from session_uploads.services.verification.orchestrator import VerificationService
from session_uploads.utils.dependencies import get_storage_lifecycle
from session_uploads.utils.errors import ValidationError
from session_uploads.utils.s3_client import StorageClientLifecycle

router = APIRouter(prefix="/live-classes", tags=["live-classes"])


@router.post("/verify-videos")
async def verify_videos(
    payload: Any = Body(None),
    lifecycle: StorageClientLifecycle = Depends(get_storage_lifecycle),
):
    """Checks that previously uploaded videos exist in S3."""
    try:
        request = VerifyVideosRequest.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError("Videos array is required") from e

    logging.info(f"🔍 Verifying videos in S3: {len(request.videos)} videos")

    service = VerificationService(lifecycle.require())
    report = await service.verify_entries_async(request.videos)

    return {
        "status": "success",
        "message": f"Verified {len(report.verified)}/{len(request.videos)} videos",
        "data": report.to_response_data(),
    }
