from __future__ import annotations

import hashlib
import threading
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest
from botocore.exceptions import ClientError

from session_uploads.services.uploads.naming import StaticStudentLookup, StudentNameResolver
from session_uploads.utils.config import Settings
from session_uploads.utils.s3_client import StorageClient, StorageClientLifecycle

STUDENT_NAMES = {
    "s1": "Jane O'Brien",
    "s2": "Ravi  Kumar",
}


def _client_error(code: str, message: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeS3Client:
    """In-memory stand-in for a boto3 S3 client."""

    def __init__(self, fail_parts: Iterable[int] = (), fail_put_keys: Iterable[str] = ()):
        self.objects: Dict[str, dict] = {}
        self.multipart: Dict[str, dict] = {}
        self.aborted: list[str] = []
        self.calls: list[tuple[str, Optional[str]]] = []
        self.fail_parts = set(fail_parts)
        self.fail_put_keys = set(fail_put_keys)
        self.fail_put_after: Optional[int] = None
        self.closed = False
        self._lock = threading.Lock()

    def _record(self, method: str, key: Optional[str] = None) -> None:
        with self._lock:
            self.calls.append((method, key))

    def _store(self, key: str, body: bytes, content_type: str, metadata: dict) -> None:
        self.objects[key] = {
            "Body": body,
            "ContentType": content_type,
            "Metadata": dict(metadata),
            "LastModified": datetime.now(timezone.utc),
            "ETag": f'"{hashlib.md5(body).hexdigest()}"',
        }

    def put_object(self, Bucket, Key, Body, ContentType=None, Metadata=None):
        self._record("put_object", Key)
        puts = sum(1 for method, _ in self.calls if method == "put_object")
        if Key in self.fail_put_keys or (
            self.fail_put_after is not None and puts > self.fail_put_after
        ):
            raise _client_error("InternalError", "simulated put failure", "PutObject")
        self._store(Key, bytes(Body), ContentType, Metadata or {})
        return {"ETag": self.objects[Key]["ETag"]}

    def create_multipart_upload(self, Bucket, Key, ContentType=None, Metadata=None):
        self._record("create_multipart_upload", Key)
        upload_id = uuid.uuid4().hex
        with self._lock:
            self.multipart[upload_id] = {
                "key": Key,
                "parts": {},
                "content_type": ContentType,
                "metadata": Metadata or {},
            }
        return {"UploadId": upload_id}

    def upload_part(self, Bucket, Key, UploadId, PartNumber, Body):
        self._record("upload_part", Key)
        if PartNumber in self.fail_parts:
            raise _client_error("InternalError", f"simulated failure on part {PartNumber}", "UploadPart")
        with self._lock:
            self.multipart[UploadId]["parts"][PartNumber] = bytes(Body)
        return {"ETag": f'"part-{PartNumber}"'}

    def complete_multipart_upload(self, Bucket, Key, UploadId, MultipartUpload):
        self._record("complete_multipart_upload", Key)
        with self._lock:
            upload = self.multipart.pop(UploadId)
        numbers = [p["PartNumber"] for p in MultipartUpload["Parts"]]
        body = b"".join(upload["parts"][n] for n in numbers)
        self._store(Key, body, upload["content_type"], upload["metadata"])
        return {"Location": f"https://{Bucket}/{Key}"}

    def abort_multipart_upload(self, Bucket, Key, UploadId):
        self._record("abort_multipart_upload", Key)
        with self._lock:
            self.multipart.pop(UploadId, None)
            self.aborted.append(UploadId)

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn, HttpMethod=None):
        return f"https://signed.example.com/{Params['Key']}?method={ClientMethod}&expires={ExpiresIn}"

    def head_object(self, Bucket, Key):
        self._record("head_object", Key)
        if Key not in self.objects:
            raise _client_error("404", "Not Found", "HeadObject")
        obj = self.objects[Key]
        return {
            "ContentLength": len(obj["Body"]),
            "LastModified": obj["LastModified"],
            "ETag": obj["ETag"],
            "ContentType": obj["ContentType"],
        }

    def head_bucket(self, Bucket):
        self._record("head_bucket")
        return {}

    def close(self):
        self.closed = True


@pytest.fixture()
def fake_s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture()
def spool_dir(tmp_path: Path) -> Path:
    return tmp_path / "spool"


@pytest.fixture()
def settings(spool_dir: Path) -> Settings:
    return Settings(
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="secret",
        aws_region="us-east-1",
        aws_s3_bucket_name="test-bucket",
        postgres_dsn="",
        multipart_part_size=1024 * 1024,
        multipart_max_concurrency=3,
        memory_upload_max_bytes=4 * 1024 * 1024,
        temp_upload_dir=str(spool_dir),
    )


@pytest.fixture()
def storage(fake_s3: FakeS3Client) -> StorageClient:
    return StorageClient(client=fake_s3, bucket="test-bucket", region="us-east-1")


@pytest.fixture()
def lifecycle(storage: StorageClient) -> StorageClientLifecycle:
    return StorageClientLifecycle(storage)


@pytest.fixture()
def resolver() -> StudentNameResolver:
    return StudentNameResolver([StaticStudentLookup(STUDENT_NAMES)])


@pytest.fixture()
def make_client(settings: Settings):
    pytest.importorskip("httpx")
    from fastapi.testclient import TestClient

    from session_uploads.main import create_app
    from session_uploads.utils.dependencies import get_resolver_factory

    clients = []

    def _make(lifecycle: StorageClientLifecycle):
        app = create_app(settings=settings, storage_lifecycle=lifecycle)

        @asynccontextmanager
        async def static_resolver():
            yield StudentNameResolver([StaticStudentLookup(STUDENT_NAMES)])

        app.dependency_overrides[get_resolver_factory] = lambda: static_resolver
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)
