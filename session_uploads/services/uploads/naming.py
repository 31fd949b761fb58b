import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

import asyncpg

from session_uploads.services.uploads import db_utils

UNKNOWN_STUDENT_NAME = "unknown"

_DISALLOWED = re.compile(r"[^A-Za-z0-9_\s]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_name(name: str) -> str:
    """
    Makes a display name safe for use inside an object key.

    "Jane O'Brien" -> "jane_obrien". Idempotent.
    """
    cleaned = _DISALLOWED.sub("", name or "")
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned.replace(" ", "_").lower()


@dataclass(frozen=True)
class DirectoryLookupResult:
    found: bool
    name: Optional[str] = None

    @classmethod
    def present(cls, name: str) -> "DirectoryLookupResult":
        return cls(found=True, name=name)

    @classmethod
    def absent(cls) -> "DirectoryLookupResult":
        return cls(found=False)


class StudentDirectoryLookup(Protocol):
    source: str

    async def lookup(self, student_id: str) -> DirectoryLookupResult: ...


class PostgresStudentLookup:
    source = "students"

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def lookup(self, student_id: str) -> DirectoryLookupResult:
        name = await db_utils.fetch_student_full_name(self.conn, student_id)
        if name is None:
            return DirectoryLookupResult.absent()
        return DirectoryLookupResult.present(name)


class PostgresUserLookup:
    source = "users"

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def lookup(self, student_id: str) -> DirectoryLookupResult:
        name = await db_utils.fetch_student_user_name(self.conn, student_id)
        if name is None:
            return DirectoryLookupResult.absent()
        return DirectoryLookupResult.present(name)


class StaticStudentLookup:
    """In-memory directory, used for local development and tests."""

    def __init__(self, names: Mapping[str, str], source: str = "static"):
        self.names = dict(names)
        self.source = source

    async def lookup(self, student_id: str) -> DirectoryLookupResult:
        if student_id in self.names:
            return DirectoryLookupResult.present(self.names[student_id])
        return DirectoryLookupResult.absent()


class StudentNameResolver:
    """
    Resolves a key-safe name per student id.

    Lookups are consulted in order and the first present result wins. Lookup
    errors are logged and treated as a miss, so resolution never fails the
    request; unresolved ids get UNKNOWN_STUDENT_NAME.
    """

    def __init__(self, lookups: Sequence[StudentDirectoryLookup]):
        self.lookups: List[StudentDirectoryLookup] = list(lookups)

    async def resolve(self, student_id: str) -> str:
        for lookup in self.lookups:
            try:
                result = await lookup.lookup(student_id)
            except Exception as e:
                logging.error(
                    f"❌ Error finding student {student_id} in {lookup.source}: {e}"
                )
                continue
            if result.found:
                logging.info(
                    f"✅ Found student {student_id} in {lookup.source}: {result.name}"
                )
                return sanitize_name(result.name or "") or UNKNOWN_STUDENT_NAME
        logging.warning(
            f"⚠️ Student {student_id} not found in any directory, using '{UNKNOWN_STUDENT_NAME}'"
        )
        return UNKNOWN_STUDENT_NAME

    async def resolve_all(self, student_ids: Sequence[str]) -> Dict[str, str]:
        names: Dict[str, str] = {}
        for student_id in student_ids:
            if student_id not in names:
                names[student_id] = await self.resolve(student_id)
        logging.info(f"📝 Student names mapping: {names}")
        return names
