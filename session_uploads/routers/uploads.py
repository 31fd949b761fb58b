import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from session_uploads.schemas.uploads import FailurePolicy, UploadFileSource, UploadRequest
from session_uploads.services.uploads.orchestrator import upload_session_videos
from session_uploads.services.uploads.s3_utils import StorageUploader
from session_uploads.services.uploads.temp_files import TemporaryUploadFiles
from session_uploads.services.uploads.validation import validate_upload_request
from session_uploads.utils.config import Settings
from session_uploads.utils.dependencies import (
    ResolverFactory,
    get_resolver_factory,
    get_settings,
    get_storage_lifecycle,
)
from session_uploads.utils.errors import UploadPipelineError, ValidationError
from session_uploads.utils.s3_client import StorageClientLifecycle

router = APIRouter(prefix="/live-classes", tags=["live-classes"])


def _parse_policy(raw: Optional[str]) -> FailurePolicy:
    try:
        return FailurePolicy((raw or FailurePolicy.FAIL_FAST.value).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid failure policy '{raw}', expected fail_fast or best_effort"
        )


def _measure(upload: UploadFile) -> int:
    """Declared part size, or the length of the buffered stream when unset."""
    if upload.size:
        return upload.size
    source = upload.file
    position = source.tell()
    source.seek(0, 2)
    size = source.tell()
    source.seek(position)
    return size


def _describe(upload: UploadFile) -> UploadFileSource:
    return UploadFileSource(
        name=upload.filename or "video.mp4",
        mime_type=upload.content_type or "",
        size_bytes=_measure(upload),
    )


async def _load_source(
    upload: UploadFile,
    source: UploadFileSource,
    temp_files: TemporaryUploadFiles,
    memory_limit: int,
) -> UploadFileSource:
    """Keeps small parts in memory; spools large ones to a temporary file."""
    if source.size_bytes and source.size_bytes > memory_limit:
        suffix = Path(source.name).suffix
        source.disk_path = await asyncio.to_thread(temp_files.spool, upload.file, suffix)
        source.size_bytes = source.disk_path.stat().st_size
    else:
        source.buffer = await upload.read()
        source.size_bytes = len(source.buffer)
    await upload.close()
    return source


@router.post("/upload-videos")
async def upload_videos(
    videos: Optional[List[UploadFile]] = File(None),
    studentIds: Optional[str] = Form(None),
    batchId: Optional[str] = Form(None),
    sessionNo: Optional[str] = Form(None),
    failurePolicy: Optional[str] = Form(None),
    settings: Settings = Depends(get_settings),
    lifecycle: StorageClientLifecycle = Depends(get_storage_lifecycle),
    resolver_factory: ResolverFactory = Depends(get_resolver_factory),
):
    """Uploads recorded session videos into every selected student's folder."""
    uploads = videos or []
    logging.info(
        f"📥 Received video upload: {len(uploads)} file(s), batch={batchId}, session={sessionNo}"
    )

    sources = [_describe(u) for u in uploads]
    student_ids = validate_upload_request(sources, studentIds, batchId, sessionNo)
    policy = _parse_policy(failurePolicy)
    storage = lifecycle.require()
    uploader = StorageUploader(storage, settings)

    try:
        with TemporaryUploadFiles(settings.temp_upload_dir) as temp_files:
            for upload, source in zip(uploads, sources):
                await _load_source(
                    upload, source, temp_files, settings.memory_upload_max_bytes
                )
            request = UploadRequest(
                files=sources,
                student_ids=student_ids,
                batch_id=batchId.strip(),
                session_no=sessionNo.strip(),
                policy=policy,
            )
            async with resolver_factory() as resolver:
                result = await upload_session_videos(request, resolver, uploader)
    except UploadPipelineError:
        raise
    except Exception as e:
        logging.error(f"❌ Unexpected error in upload_videos: {e}", exc_info=True)
        raise UploadPipelineError(f"Upload failed: {e}") from e

    failed = len(result.failed)
    stored = len(result.videos) - failed
    data = result.model_dump(by_alias=True, mode="json")
    if failed:
        return {
            "status": "partial",
            "message": f"{stored} of {len(result.videos)} video(s) uploaded, {failed} failed",
            "data": data,
        }
    return {
        "status": "success",
        "message": f"{stored} video(s) uploaded successfully",
        "data": data,
    }
