import secrets
import string
import time
from typing import Optional

DEFAULT_EXTENSION = "mp4"
RANDOM_SUFFIX_LENGTH = 8
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def file_extension(file_name: Optional[str]) -> str:
    """Last dot-segment of the file name, or DEFAULT_EXTENSION."""
    if not file_name or "." not in file_name:
        return DEFAULT_EXTENSION
    ext = file_name.rsplit(".", 1)[1].strip().lower()
    if not ext or not ext.isalnum():
        return DEFAULT_EXTENSION
    return ext


def random_suffix(length: int = RANDOM_SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def student_folder(
    batch_id: str, student_id: str, student_name: str, session_no: str
) -> str:
    return f"videos/{batch_id}/{student_id}({student_name})/session-{session_no}/"


def build_object_key(
    batch_id: str,
    student_id: str,
    student_name: str,
    session_no: str,
    file_name: Optional[str],
    now_ms: Optional[int] = None,
) -> str:
    """
    Builds the storage key for one (file, student) pair:

        videos/{batch}/{student}({name})/session-{n}/{unixMillis}-{rand8}.{ext}
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    folder = student_folder(batch_id, student_id, student_name, session_no)
    return f"{folder}{now_ms}-{random_suffix()}.{file_extension(file_name)}"


def build_folder_structure(batch_id: str, session_no: str) -> str:
    return f"videos/{batch_id}/[student_id]([student_name])/session-{session_no}/"
