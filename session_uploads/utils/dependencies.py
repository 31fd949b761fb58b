import logging
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Callable, List

import asyncpg
from fastapi import Request

from session_uploads.services.uploads.naming import (
    PostgresStudentLookup,
    PostgresUserLookup,
    StudentDirectoryLookup,
    StudentNameResolver,
)
from session_uploads.utils.config import Settings
from session_uploads.utils.s3_client import StorageClientLifecycle

ResolverFactory = Callable[[], AsyncContextManager[StudentNameResolver]]


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage_lifecycle(request: Request) -> StorageClientLifecycle:
    return request.app.state.storage


@asynccontextmanager
async def postgres_name_resolver(settings: Settings) -> AsyncIterator[StudentNameResolver]:
    """
    Opens a resolver over the students and users tables.

    A missing DSN or an unreachable database yields a resolver with no
    lookups, so every student resolves to the unknown sentinel.
    """
    conn = None
    lookups: List[StudentDirectoryLookup] = []
    if not settings.postgres_dsn:
        logging.warning("⚠️ Postgres DSN not configured, student names will be 'unknown'")
    else:
        try:
            conn = await asyncpg.connect(settings.postgres_dsn, statement_cache_size=0)
            lookups = [PostgresStudentLookup(conn), PostgresUserLookup(conn)]
        except Exception as e:
            logging.error(f"❌ Could not connect to student directory: {e}")
    try:
        yield StudentNameResolver(lookups)
    finally:
        if conn:
            await conn.close()


def get_resolver_factory(request: Request) -> ResolverFactory:
    settings = get_settings(request)
    return lambda: postgres_name_resolver(settings)
