from __future__ import annotations

import asyncio
import io

import pytest

pytest.importorskip("fastapi")

from fastapi import UploadFile
from starlette.datastructures import Headers

from session_uploads.routers.uploads import _describe, _load_source
from session_uploads.services.uploads.temp_files import TemporaryUploadFiles


def _upload(body: bytes, size=None) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(body),
        size=size,
        filename="lecture.mp4",
        headers=Headers({"content-type": "video/mp4"}),
    )


@pytest.mark.parametrize("declared", [None, 0])
def test_undeclared_size_is_measured_from_stream(declared, spool_dir) -> None:
    body = b"\x02" * 4096
    upload = _upload(body, size=declared)

    source = _describe(upload)
    assert source.size_bytes == len(body)

    with TemporaryUploadFiles(spool_dir) as temp_files:
        asyncio.run(_load_source(upload, source, temp_files, memory_limit=1024))
        assert source.is_disk_backed
        assert source.buffer is None
        assert source.disk_path.read_bytes() == body

    assert not source.disk_path.exists()


def test_small_part_stays_in_memory(spool_dir) -> None:
    body = b"\x03" * 100
    upload = _upload(body)

    source = _describe(upload)
    with TemporaryUploadFiles(spool_dir) as temp_files:
        asyncio.run(_load_source(upload, source, temp_files, memory_limit=1024))

    assert source.buffer == body
    assert source.disk_path is None
    assert not spool_dir.exists()
