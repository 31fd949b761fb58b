import asyncio
import logging
from typing import Any, Iterable

from botocore.exceptions import ClientError
from pydantic import ValidationError as PydanticValidationError

from session_uploads.schemas.verification import (
    VerificationRecord,
    VerificationReport,
    VideoReference,
)
from session_uploads.utils.errors import NotFoundError
from session_uploads.utils.s3_client import StorageClient

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class VerificationService:
    """
    Re-probes stored objects with HEAD requests.

    Each key is classified on its own; a failed probe is reported and the
    remaining keys are still checked. Nothing is repaired.
    """

    def __init__(self, storage: StorageClient):
        self.storage = storage

    def probe(self, key: str) -> VerificationRecord:
        try:
            result = self.storage.client.head_object(Bucket=self.storage.bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                error = NotFoundError(f"Object not found: {key}", key=key)
                return VerificationRecord(key=key, verified=False, error=error.message)
            return VerificationRecord(key=key, verified=False, error=str(e))
        except Exception as e:
            return VerificationRecord(key=key, verified=False, error=str(e))

        return VerificationRecord(
            key=key,
            verified=True,
            observed_size=result.get("ContentLength"),
            last_modified=result.get("LastModified"),
            etag=result.get("ETag"),
        )

    def verify(self, keys: Iterable[str]) -> VerificationReport:
        records = []
        for key in keys:
            record = self.probe(key)
            if record.verified:
                logging.info(f"✅ Verified: {key} ({record.observed_size} bytes)")
            else:
                logging.warning(f"❌ Failed to verify: {key} - {record.error}")
            records.append(record)
        return VerificationReport(records=records)

    async def verify_async(self, keys: Iterable[str]) -> VerificationReport:
        return await asyncio.to_thread(self.verify, list(keys))

    def verify_entries(self, entries: Iterable[Any]) -> VerificationReport:
        """
        Like :meth:`verify`, but takes raw request entries. An entry without
        a usable s3Key becomes its own failed record.
        """
        records = []
        for entry in entries:
            try:
                reference = VideoReference.model_validate(entry)
            except PydanticValidationError:
                key = entry.get("s3Key") if isinstance(entry, dict) else None
                error = "s3Key is required and must be a string"
                logging.warning(f"❌ Failed to verify: {entry!r} - {error}")
                records.append(
                    VerificationRecord(
                        key=key if isinstance(key, str) else None,
                        verified=False,
                        error=error,
                    )
                )
                continue
            records.extend(self.verify([reference.s3_key]).records)
        return VerificationReport(records=records)

    async def verify_entries_async(self, entries: Iterable[Any]) -> VerificationReport:
        return await asyncio.to_thread(self.verify_entries, list(entries))
