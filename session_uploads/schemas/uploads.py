from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class OutcomeStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    VERIFIED = "verified"
    VERIFICATION_FAILED = "verification_failed"


class FailurePolicy(str, Enum):
    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"


@dataclass
class UploadFileSource:
    """One recorded video, held either in memory or in a temporary file."""

    name: str
    mime_type: str
    size_bytes: int
    buffer: Optional[bytes] = None
    disk_path: Optional[Path] = None

    @property
    def is_disk_backed(self) -> bool:
        return self.disk_path is not None


@dataclass
class UploadRequest:
    files: List[UploadFileSource]
    student_ids: List[str]
    batch_id: str
    session_no: str
    policy: FailurePolicy = field(default=FailurePolicy.FAIL_FAST)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadOutcome(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    key: str = Field(alias="s3Key")
    file_name: str = Field(alias="name")
    size_bytes: int = Field(alias="size")
    student_id: str
    student_name: str
    batch_id: str
    session_no: str
    status: OutcomeStatus
    signed_url: Optional[str] = None
    direct_url: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    url_expires_at: Optional[datetime] = None
    error_message: Optional[str] = None


class UploadResultSet(CamelModel):
    videos: List[UploadOutcome]
    folder_structure: str
    policy: FailurePolicy = FailurePolicy.FAIL_FAST

    @property
    def failed(self) -> List[UploadOutcome]:
        return [v for v in self.videos if v.status == OutcomeStatus.FAILED]


class UploadUrlRequest(CamelModel):
    batch_object_id: str
    student_name: str
    file_name: str
    file_type: Optional[str] = None


class SignedVideoUrlRequest(CamelModel):
    video_path: str
