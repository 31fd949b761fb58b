import asyncio
import logging

from fastapi import APIRouter, Depends

from session_uploads.schemas.uploads import SignedVideoUrlRequest, UploadUrlRequest
from session_uploads.services.uploads.s3_utils import (
    check_bucket_access,
    generate_signed_video_url,
    generate_upload_url,
)
from session_uploads.utils.config import Settings
from session_uploads.utils.dependencies import get_settings, get_storage_lifecycle
from session_uploads.utils.errors import (
    ConfigurationError,
    UploadPipelineError,
    ValidationError,
)
from session_uploads.utils.s3_client import StorageClientLifecycle

ALLOWED_UPLOAD_TYPES = {"video/mp4", "video/mov", "video/webm"}

router = APIRouter(prefix="/live-classes", tags=["live-classes"])


@router.post("/generate-upload-url")
async def create_upload_url(
    request: UploadUrlRequest,
    settings: Settings = Depends(get_settings),
    lifecycle: StorageClientLifecycle = Depends(get_storage_lifecycle),
):
    """Returns a short-lived presigned PUT URL for a direct browser upload."""
    if not request.batch_object_id or not request.student_name or not request.file_name:
        raise ValidationError("Missing required parameters")
    if request.file_type and request.file_type not in ALLOWED_UPLOAD_TYPES:
        raise ValidationError("Invalid file type")

    storage = lifecycle.require()
    key = f"videos/{request.batch_object_id}/{request.student_name}/{request.file_name}"
    try:
        url = generate_upload_url(
            storage,
            key,
            request.file_type or "video/mp4",
            settings.upload_url_ttl_seconds,
        )
    except Exception as e:
        raise UploadPipelineError(f"Failed to generate upload URL: {e}") from e

    return {
        "status": "success",
        "data": {
            "uploadUrl": url,
            "filePath": key,
            "fileName": request.file_name,
            "expiresIn": settings.upload_url_ttl_seconds,
        },
    }


@router.post("/generate-signed-url")
async def create_signed_video_url(
    request: SignedVideoUrlRequest,
    settings: Settings = Depends(get_settings),
    lifecycle: StorageClientLifecycle = Depends(get_storage_lifecycle),
):
    """Returns a time-limited read URL for a stored video."""
    if not request.video_path:
        raise ValidationError("Video path is required")

    storage = lifecycle.require()
    try:
        url = generate_signed_video_url(
            storage, request.video_path, settings.signed_url_ttl_seconds
        )
    except Exception as e:
        raise UploadPipelineError(f"Failed to generate signed URL: {e}") from e

    logging.info(f"✅ Generated signed URL for video: {request.video_path}")
    return {
        "status": "success",
        "data": {
            "signedUrl": url,
            "expiresIn": settings.signed_url_ttl_seconds,
            "videoPath": request.video_path,
        },
    }


@router.get("/test-s3-connection")
async def check_s3_connection(
    lifecycle: StorageClientLifecycle = Depends(get_storage_lifecycle),
):
    """Probes the configured bucket with a HEAD request."""
    storage = lifecycle.require()
    try:
        await asyncio.to_thread(check_bucket_access, storage)
    except Exception as e:
        logging.error(f"❌ S3 connection test failed: {e}")
        raise ConfigurationError(f"S3 connection test failed: {e}") from e

    return {
        "status": "success",
        "data": {
            "bucketName": storage.bucket,
            "region": storage.region,
            "accessStatus": "accessible",
            "message": "S3 bucket is accessible and credentials are valid",
        },
    }
