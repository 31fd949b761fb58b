"""Process-wide S3 client construction.

The client is built once by the application lifespan and handed to the
routers through ``app.state``. Construction never raises: a bad configuration
leaves the lifecycle in an unavailable state, and every caller that needs
storage goes through :meth:`StorageClientLifecycle.require`.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import boto3
from botocore.config import Config

from session_uploads.utils.config import Settings
from session_uploads.utils.errors import ConfigurationError

PLACEHOLDER_VALUES = {"your_aws_access_key_here", "your_aws_secret_key_here"}


@dataclass(frozen=True)
class StorageClient:
    """A configured S3 client bound to one bucket."""

    client: Any
    bucket: str
    region: str

    def direct_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


def missing_storage_settings(settings: Settings) -> List[str]:
    """Returns the names of required storage settings that are unset."""
    required = {
        "AWS_ACCESS_KEY_ID": settings.aws_access_key_id,
        "AWS_SECRET_ACCESS_KEY": settings.aws_secret_access_key,
        "AWS_REGION": settings.aws_region,
        "AWS_S3_BUCKET_NAME": settings.aws_s3_bucket_name,
    }
    return [
        name
        for name, value in required.items()
        if not value or value.strip() in PLACEHOLDER_VALUES
    ]


def create_s3_client(settings: Settings):
    return boto3.client(
        "s3",
        region_name=settings.aws_region,
        endpoint_url=settings.s3_endpoint_url or None,
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        config=Config(
            signature_version="s3v4",
            retries={"max_attempts": 4, "mode": "standard"},
            connect_timeout=settings.s3_connect_timeout,
            read_timeout=settings.s3_read_timeout,
        ),
    )


class StorageClientLifecycle:
    def __init__(
        self, storage: Optional[StorageClient] = None, reason: Optional[str] = None
    ):
        self._storage = storage
        self.reason = reason

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageClientLifecycle":
        missing = missing_storage_settings(settings)
        if missing:
            reason = f"AWS S3 configuration is missing: {', '.join(missing)}"
            logging.error(f"❌ {reason}")
            return cls.unavailable(reason)

        try:
            client = create_s3_client(settings)
        except Exception as e:
            logging.error(f"❌ Failed to initialize S3 client: {e}")
            return cls.unavailable(f"S3 client initialization failed: {e}")

        logging.info(
            f"✅ S3 client initialized for bucket {settings.aws_s3_bucket_name} "
            f"({settings.aws_region})"
        )
        return cls(
            StorageClient(
                client=client,
                bucket=settings.aws_s3_bucket_name,
                region=settings.aws_region,
            )
        )

    @classmethod
    def unavailable(cls, reason: str) -> "StorageClientLifecycle":
        return cls(storage=None, reason=reason)

    @property
    def available(self) -> bool:
        return self._storage is not None

    def require(self) -> StorageClient:
        if self._storage is None:
            raise ConfigurationError(self.reason or "S3 client is not initialized")
        return self._storage

    def close(self) -> None:
        if self._storage is not None:
            self._storage.client.close()
