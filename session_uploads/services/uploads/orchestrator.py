import asyncio
import logging
from typing import List

from session_uploads.schemas.uploads import (
    FailurePolicy,
    OutcomeStatus,
    UploadOutcome,
    UploadRequest,
    UploadResultSet,
)
from session_uploads.services.uploads.keys import build_folder_structure, build_object_key
from session_uploads.services.uploads.naming import StudentNameResolver
from session_uploads.services.uploads.s3_utils import StorageUploader
from session_uploads.utils.errors import TransferError


class UploadResultAggregator:
    """
    Collects one outcome per (file, student) pair in iteration order.

    Under FAIL_FAST the first TransferError is re-raised and nothing is
    reported; under BEST_EFFORT the failure is recorded and fan-out continues.
    """

    def __init__(self, batch_id: str, session_no: str, policy: FailurePolicy):
        self.batch_id = batch_id
        self.session_no = session_no
        self.policy = policy
        self.outcomes: List[UploadOutcome] = []

    def add(self, outcome: UploadOutcome) -> None:
        self.outcomes.append(outcome)

    def add_failure(
        self,
        error: TransferError,
        file_name: str,
        size_bytes: int,
        student_id: str,
        student_name: str,
    ) -> None:
        if self.policy == FailurePolicy.FAIL_FAST:
            raise error
        self.outcomes.append(
            UploadOutcome(
                key=error.key or "",
                file_name=file_name,
                size_bytes=size_bytes,
                student_id=student_id,
                student_name=student_name,
                batch_id=self.batch_id,
                session_no=self.session_no,
                status=OutcomeStatus.FAILED,
                error_message=error.message,
            )
        )

    def result(self) -> UploadResultSet:
        return UploadResultSet(
            videos=list(self.outcomes),
            folder_structure=build_folder_structure(self.batch_id, self.session_no),
            policy=self.policy,
        )


async def upload_session_videos(
    request: UploadRequest,
    resolver: StudentNameResolver,
    uploader: StorageUploader,
) -> UploadResultSet:
    """
    Fans each recorded file out to every student's session folder.

    Objects written before a fail-fast abort stay in storage. Temporary
    buffers are owned by the caller's TemporaryUploadFiles scope.
    """
    logging.info(
        f"📋 Upload parameters - Batch: {request.batch_id}, Session: {request.session_no}, "
        f"Files: {len(request.files)}, Students: {len(request.student_ids)}, "
        f"Policy: {request.policy.value}"
    )

    student_names = await resolver.resolve_all(request.student_ids)
    aggregator = UploadResultAggregator(
        request.batch_id, request.session_no, request.policy
    )

    for source in request.files:
        for student_id in request.student_ids:
            student_name = student_names[student_id]
            key = build_object_key(
                request.batch_id,
                student_id,
                student_name,
                request.session_no,
                source.name,
            )
            try:
                outcome = await asyncio.to_thread(
                    uploader.upload,
                    source,
                    key,
                    student_id,
                    student_name,
                    request.batch_id,
                    request.session_no,
                )
            except TransferError as e:
                logging.error(f"❌ Upload failed for {key}: {e.message}")
                aggregator.add_failure(
                    e, source.name, source.size_bytes, student_id, student_name
                )
                continue
            aggregator.add(outcome)

    result = aggregator.result()
    logging.info(
        f"✅ Upload completed: {len(result.videos) - len(result.failed)}/"
        f"{len(result.videos)} video(s) stored"
    )
    return result
