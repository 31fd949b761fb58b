import json
import logging
from typing import Any, List, Optional, Sequence

from session_uploads.schemas.uploads import UploadFileSource
from session_uploads.utils.errors import ValidationError


def parse_student_ids(student_ids: Any) -> List[str]:
    """
    Normalizes the ``studentIds`` form field into a list of id strings.

    Accepts a list, a JSON-encoded array, or a single bare id.
    """
    parsed = student_ids
    if isinstance(student_ids, str):
        raw = student_ids.strip()
        if raw.startswith("[") or raw.startswith("{") or raw.startswith('"'):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as e:
                logging.error(f"❌ Error parsing studentIds: {e}")
                raise ValidationError("Invalid student IDs format") from e
        else:
            parsed = [raw]

    if not isinstance(parsed, list) or len(parsed) == 0:
        logging.error(f"❌ Invalid student IDs array: {parsed!r}")
        raise ValidationError("Student IDs are required")

    ids = [str(s).strip() for s in parsed if s is not None and str(s).strip()]
    if len(ids) != len(parsed):
        raise ValidationError("Student IDs must be non-empty strings")
    return ids


def validate_upload_request(
    files: Optional[Sequence[UploadFileSource]],
    student_ids: Any,
    batch_id: Optional[str],
    session_no: Optional[str],
) -> List[str]:
    """
    Checks an upload request before anything touches disk or network.

    Returns the normalized student id list. Raises ValidationError.
    """
    if not files:
        logging.error("❌ No files uploaded")
        raise ValidationError("No video files uploaded")

    for f in files:
        mime_type = (f.mime_type or "").lower()
        if not mime_type.startswith("video/"):
            raise ValidationError(
                f"Only video files are allowed: {f.name} has type {f.mime_type or 'unknown'}"
            )

    if not student_ids or not batch_id or not str(batch_id).strip():
        raise ValidationError(
            "Student IDs, Batch ID, and Session Number are required"
        )
    if session_no is None or not str(session_no).strip():
        raise ValidationError(
            "Student IDs, Batch ID, and Session Number are required"
        )

    return parse_student_ids(student_ids)
