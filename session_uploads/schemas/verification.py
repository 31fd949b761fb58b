from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from session_uploads.schemas.uploads import OutcomeStatus


class VideoReference(BaseModel):
    s3_key: str = Field(alias="s3Key")


class VerifyVideosRequest(BaseModel):
    videos: List[Any]


class VerificationRecord(BaseModel):
    key: Optional[str]
    verified: bool
    observed_size: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    error: Optional[str] = None

    @property
    def status(self) -> OutcomeStatus:
        if self.verified:
            return OutcomeStatus.VERIFIED
        return OutcomeStatus.VERIFICATION_FAILED


class VerificationReport(BaseModel):
    records: List[VerificationRecord]

    @property
    def verified(self) -> List[VerificationRecord]:
        return [r for r in self.records if r.verified]

    @property
    def failed(self) -> List[VerificationRecord]:
        return [r for r in self.records if not r.verified]

    def to_response_data(self) -> dict:
        return {
            "verifiedVideos": [
                {
                    "s3Key": r.key,
                    "size": r.observed_size,
                    "lastModified": r.last_modified,
                    "etag": r.etag,
                }
                for r in self.verified
            ],
            "failedVerifications": [
                {"s3Key": r.key, "error": r.error} for r in self.failed
            ],
        }
