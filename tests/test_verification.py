from __future__ import annotations

from session_uploads.schemas.uploads import OutcomeStatus, UploadFileSource
from session_uploads.services.uploads.s3_utils import StorageUploader
from session_uploads.services.verification.orchestrator import VerificationService

KEY = "videos/b1/s1(jane_obrien)/session-3/1700000000000-abcd1234.mp4"


def test_verifies_uploaded_object_size(storage, settings) -> None:
    body = b"recording" * 1000
    source = UploadFileSource(name="a.mp4", mime_type="video/mp4", size_bytes=len(body), buffer=body)
    StorageUploader(storage, settings).upload(source, KEY, "s1", "jane_obrien", "b1", "3")

    report = VerificationService(storage).verify([KEY])

    [record] = report.records
    assert record.verified is True
    assert record.observed_size == len(body)
    assert record.etag
    assert record.last_modified is not None


def test_missing_key_is_reported_and_probing_continues(fake_s3, storage) -> None:
    fake_s3.put_object(Bucket="test-bucket", Key="present-1", Body=b"1")
    fake_s3.put_object(Bucket="test-bucket", Key="present-2", Body=b"22")

    report = VerificationService(storage).verify(["present-1", "missing", "present-2"])

    assert [r.key for r in report.verified] == ["present-1", "present-2"]
    [failure] = report.failed
    assert failure.key == "missing"
    assert "not found" in failure.error.lower()
    heads = [key for method, key in fake_s3.calls if method == "head_object"]
    assert heads == ["present-1", "missing", "present-2"]


def test_other_lookup_errors_are_reported(fake_s3, storage) -> None:
    def broken_head(Bucket, Key):
        raise ConnectionError("connection reset")

    fake_s3.head_object = broken_head
    report = VerificationService(storage).verify(["k1", "k2"])
    assert [r.error for r in report.failed] == ["connection reset", "connection reset"]


def test_response_shape(fake_s3, storage) -> None:
    fake_s3.put_object(Bucket="test-bucket", Key="present", Body=b"abc")
    data = VerificationService(storage).verify(["present", "missing"]).to_response_data()
    assert data["verifiedVideos"][0]["s3Key"] == "present"
    assert data["verifiedVideos"][0]["size"] == 3
    assert data["failedVerifications"][0]["s3Key"] == "missing"


def test_records_carry_verification_status(fake_s3, storage) -> None:
    fake_s3.put_object(Bucket="test-bucket", Key="present", Body=b"abc")
    report = VerificationService(storage).verify(["present", "missing"])
    assert [r.status for r in report.records] == [
        OutcomeStatus.VERIFIED,
        OutcomeStatus.VERIFICATION_FAILED,
    ]


def test_malformed_entries_do_not_stop_other_checks(fake_s3, storage) -> None:
    fake_s3.put_object(Bucket="test-bucket", Key="present", Body=b"abc")

    report = VerificationService(storage).verify_entries(
        [{"key": "oops"}, {"s3Key": 42}, "bare", {"s3Key": "present"}]
    )

    assert [r.verified for r in report.records] == [False, False, False, True]
    assert report.records[-1].observed_size == 3
    assert [key for method, key in fake_s3.calls if method == "head_object"] == ["present"]
