import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Tuple

from session_uploads.schemas.uploads import OutcomeStatus, UploadFileSource, UploadOutcome
from session_uploads.utils.config import Settings
from session_uploads.utils.errors import TransferError
from session_uploads.utils.s3_client import StorageClient


def plan_parts(size_bytes: int, part_size: int) -> List[Tuple[int, int, int]]:
    """Splits a file into (part_number, offset, length) triples, 1-indexed."""
    parts = []
    offset = 0
    part_number = 1
    while offset < size_bytes:
        length = min(part_size, size_bytes - offset)
        parts.append((part_number, offset, length))
        offset += length
        part_number += 1
    return parts


def read_part(path: Path, offset: int, length: int) -> bytes:
    with path.open("rb") as f:
        f.seek(offset)
        return f.read(length)


class StorageUploader:
    """
    Moves one source into S3 at a given key and issues access URLs.

    Disk-backed sources go through a multipart upload with a fixed part size
    and a bounded worker pool; a failed part aborts the whole upload so no
    truncated object becomes visible. In-memory sources use a single PUT.
    """

    def __init__(self, storage: StorageClient, settings: Settings):
        self.storage = storage
        self.part_size = settings.multipart_part_size
        self.max_concurrency = max(1, settings.multipart_max_concurrency)
        self.signed_url_ttl = settings.signed_url_ttl_seconds

    def upload(
        self,
        source: UploadFileSource,
        key: str,
        student_id: str,
        student_name: str,
        batch_id: str,
        session_no: str,
    ) -> UploadOutcome:
        uploaded_at = datetime.now(timezone.utc)
        metadata = {
            "original-name": source.name,
            "student-id": student_id,
            "session-no": session_no,
            "batch-id": batch_id,
            "uploaded-at": uploaded_at.isoformat(),
        }
        content_type = source.mime_type or "video/mp4"

        logging.info(
            f"🔍 Attempting S3 upload: bucket={self.storage.bucket}, key={key}, "
            f"contentType={content_type}, body={'stream' if source.is_disk_backed else 'buffer'}"
        )

        if source.is_disk_backed:
            size_bytes = self._check_disk_source(source.disk_path, key)
            self._multipart_upload(source.disk_path, size_bytes, key, content_type, metadata)
        else:
            size_bytes = len(source.buffer or b"")
            self._put(source.buffer or b"", key, content_type, metadata)

        signed_url = self.signed_get_url(key)
        logging.info(f"✅ Successfully uploaded to S3: {key} ({size_bytes} bytes)")
        return UploadOutcome(
            key=key,
            file_name=source.name,
            size_bytes=size_bytes,
            student_id=student_id,
            student_name=student_name,
            batch_id=batch_id,
            session_no=session_no,
            status=OutcomeStatus.SUCCEEDED,
            signed_url=signed_url,
            direct_url=self.storage.direct_url(key),
            uploaded_at=uploaded_at,
            url_expires_at=datetime.now(timezone.utc)
            + timedelta(seconds=self.signed_url_ttl),
        )

    def signed_get_url(self, key: str) -> str:
        try:
            return self.storage.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.storage.bucket, "Key": key},
                ExpiresIn=self.signed_url_ttl,
            )
        except Exception as e:
            raise TransferError(f"Failed to sign URL for {key}: {e}", key=key) from e

    def _check_disk_source(self, path: Path, key: str) -> int:
        path = Path(path)
        if not path.is_file():
            raise TransferError(f"Upload source {path} does not exist", key=key)
        size_bytes = path.stat().st_size
        if size_bytes == 0:
            raise TransferError(f"Upload source {path} is empty", key=key)
        return size_bytes

    def _put(self, body: bytes, key: str, content_type: str, metadata: Dict[str, str]):
        try:
            self.storage.client.put_object(
                Bucket=self.storage.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                Metadata=metadata,
            )
        except Exception as e:
            logging.error(f"❌ S3 upload failed for {key}: {e}")
            raise TransferError(f"Failed to upload video: {e}", key=key) from e

    def _multipart_upload(
        self,
        path: Path,
        size_bytes: int,
        key: str,
        content_type: str,
        metadata: Dict[str, str],
    ):
        client = self.storage.client
        bucket = self.storage.bucket
        try:
            resp = client.create_multipart_upload(
                Bucket=bucket, Key=key, ContentType=content_type, Metadata=metadata
            )
        except Exception as e:
            logging.error(f"❌ Create multipart failed for {key}: {e}")
            raise TransferError(f"Failed to upload video: {e}", key=key) from e
        upload_id = resp["UploadId"]

        parts = plan_parts(size_bytes, self.part_size)
        logging.info(
            f"📤 Multipart upload {upload_id} for {key}: {len(parts)} part(s), "
            f"{self.max_concurrency} in flight"
        )

        def upload_part(part_number: int, offset: int, length: int) -> dict:
            out = client.upload_part(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                PartNumber=part_number,
                Body=read_part(path, offset, length),
            )
            return {"ETag": out["ETag"], "PartNumber": part_number}

        try:
            with ThreadPoolExecutor(max_workers=self.max_concurrency) as pool:
                futures = [pool.submit(upload_part, *p) for p in parts]
                done, _ = wait(futures, return_when=FIRST_EXCEPTION)
                failed = [f for f in done if f.exception() is not None]
                if failed:
                    for f in futures:
                        f.cancel()
                    raise failed[0].exception()
                completed = [f.result() for f in futures]

            client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={
                    "Parts": sorted(completed, key=lambda p: p["PartNumber"])
                },
            )
        except Exception as e:
            logging.error(f"❌ Multipart upload failed for {key}: {e}")
            self._abort(key, upload_id)
            raise TransferError(f"Failed to upload video: {e}", key=key) from e

    def _abort(self, key: str, upload_id: str):
        try:
            self.storage.client.abort_multipart_upload(
                Bucket=self.storage.bucket, Key=key, UploadId=upload_id
            )
            logging.info(f"🧹 Aborted multipart upload {upload_id} for {key}")
        except Exception as e:
            logging.error(f"❌ Failed to abort multipart upload {upload_id} for {key}: {e}")


def generate_upload_url(
    storage: StorageClient, key: str, content_type: str, expires_in: int
) -> str:
    return storage.client.generate_presigned_url(
        "put_object",
        Params={"Bucket": storage.bucket, "Key": key, "ContentType": content_type},
        ExpiresIn=expires_in,
        HttpMethod="PUT",
    )


def generate_signed_video_url(storage: StorageClient, key: str, expires_in: int) -> str:
    return storage.client.generate_presigned_url(
        "get_object",
        Params={"Bucket": storage.bucket, "Key": key},
        ExpiresIn=expires_in,
    )


def check_bucket_access(storage: StorageClient) -> None:
    storage.client.head_bucket(Bucket=storage.bucket)
