import logging
from typing import Optional

import asyncpg


async def fetch_student_full_name(
    conn: asyncpg.Connection, student_id: str
) -> Optional[str]:
    """
    Fetch a student's full name from the primary student directory.
    Returns None when no row exists and "" when the row has no name.
    """
    row = await conn.fetchrow(
        """
        SELECT full_name
          FROM students
         WHERE id::text = $1
        """,
        student_id,
    )
    if row is None:
        return None
    return row["full_name"] or ""


async def fetch_student_user_name(
    conn: asyncpg.Connection, student_id: str
) -> Optional[str]:
    """
    Fetch a display name for a student account in the users table.
    Falls back to "first last" when full_name is empty. Returns None when no
    student row exists and "" when the row has no name fields.
    """
    row = await conn.fetchrow(
        """
        SELECT full_name, first_name, last_name
          FROM users
         WHERE id::text = $1
           AND role = 'student'
        """,
        student_id,
    )
    if row is None:
        return None
    if row["full_name"]:
        return row["full_name"]
    combined = f"{row['first_name'] or ''} {row['last_name'] or ''}".strip()
    if not combined:
        logging.warning(f"User {student_id} has no name fields set")
    return combined
