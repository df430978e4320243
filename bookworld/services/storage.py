"""
Cover Image Storage Service

Uploads book cover images to S3 with boto3.

Book writes call upload_cover() before touching the database. If the
upload fails, the request fails with UnexpectedError and no book row is
created or changed.

The storage object is provided to routes through get_cover_storage(),
so tests can swap in an in-memory implementation with
app.dependency_overrides.
"""

import logging
import re
import uuid
from functools import lru_cache
from typing import BinaryIO
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from bookworld.config import Settings, get_settings
from bookworld.exceptions import UnexpectedError

logger = logging.getLogger(__name__)

_SAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]+")


def sanitize_filename(name: str | None) -> str:
    """
    Make a filename URL-safe and S3-friendly.

    Whitespace and unsafe characters become dashes, repeats collapse.
    """
    name = (name or "").strip()
    name = re.sub(r"\s+", "-", name)
    name = _SAFE_FILENAME_RE.sub("-", name)
    name = re.sub(r"-{2,}", "-", name)
    return name or "cover"


class CoverStorage:
    """S3 bucket holding cover images."""

    def __init__(self, settings: Settings) -> None:
        self.bucket = settings.aws_bucket_name
        self.region = settings.aws_region
        self.folder = settings.cover_folder.strip("/")
        self._client = None
        if settings.storage_configured:
            self._client = boto3.client(
                "s3",
                region_name=settings.aws_region,
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
            )

    @property
    def configured(self) -> bool:
        return self._client is not None

    def public_url(self, key: str) -> str:
        key_encoded = quote(key, safe="/-._")
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key_encoded}"

    def upload_cover(self, fileobj: BinaryIO, filename: str | None, content_type: str) -> str:
        """
        Upload a cover image and return its public URL.

        Raises:
            UnexpectedError: Storage is not configured or the upload failed
        """
        if not self.configured:
            logger.error("Cover upload attempted but no bucket is configured")
            raise UnexpectedError("Image storage is not configured")

        key = f"{self.folder}/{uuid.uuid4()}_{sanitize_filename(filename)}"
        try:
            self._client.upload_fileobj(
                fileobj,
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Cover upload to s3://{self.bucket}/{key} failed: {e}")
            raise UnexpectedError("Failed to upload cover image") from e

        logger.info(f"Uploaded cover image {key}")
        return self.public_url(key)


@lru_cache
def get_cover_storage() -> CoverStorage:
    """Shared CoverStorage built from settings."""
    return CoverStorage(get_settings())
