"""Object storage for captured media (S3-compatible API)."""

from __future__ import annotations

import asyncio
import logging

import aioboto3
from botocore.exceptions import ClientError

from backend.config import settings

logger = logging.getLogger(__name__)

# Retryable S3 error codes
_RETRYABLE_CODES = {"RequestTimeout", "ServiceUnavailable", "SlowDown", "ThrottlingException", "Throttling"}


class StorageService:
    """Uploads post images and reel videos; hands back their public URLs."""

    def __init__(self) -> None:
        self.session = aioboto3.Session()
        self.endpoint = settings.STORAGE_ENDPOINT
        self.access_key = settings.STORAGE_ACCESS_KEY
        self.secret_key = settings.STORAGE_SECRET_KEY
        self.bucket = settings.STORAGE_BUCKET

    def _client(self):
        return self.session.client(
            "s3",
            endpoint_url=self.endpoint or None,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
        )

    def public_url(self, key: str) -> str:
        return f"{settings.STORAGE_PUBLIC_URL.rstrip('/')}/{key}"

    def key_from_url(self, url: str) -> str | None:
        prefix = settings.STORAGE_PUBLIC_URL.rstrip("/") + "/"
        return url.removeprefix(prefix) if url.startswith(prefix) else None

    async def upload(self, key: str, data: bytes, content_type: str, max_retries: int = 1) -> str:
        """
        Upload bytes with retry on transient failures.

        Args:
            key: Object key within the media bucket
            data: Object body
            content_type: MIME type stored with the object
            max_retries: Number of retries on transient failures (default 1)

        Returns:
            Public URL of the uploaded object
        """
        for attempt in range(max_retries + 1):
            try:
                async with self._client() as s3:
                    await s3.put_object(
                        Bucket=self.bucket,
                        Key=key,
                        Body=data,
                        ContentType=content_type,
                        CacheControl="public, max-age=31536000, immutable",
                    )
                logger.info("storage: uploaded %s (%d bytes)", key, len(data))
                return self.public_url(key)
            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "")
                if error_code not in _RETRYABLE_CODES or attempt >= max_retries:
                    raise
                wait_time = 2**attempt
                logger.warning("storage: upload %s failed (attempt %d), retrying in %ds: %s", key, attempt + 1, wait_time, e)
                await asyncio.sleep(wait_time)
            except (OSError, asyncio.TimeoutError) as e:
                # Network errors, timeouts
                if attempt >= max_retries:
                    raise
                wait_time = 2**attempt
                logger.warning("storage: upload %s failed (attempt %d), retrying in %ds: %s", key, attempt + 1, wait_time, e)
                await asyncio.sleep(wait_time)

        raise RuntimeError("unreachable")  # pragma: no cover

    async def delete(self, key: str) -> None:
        async with self._client() as s3:
            await s3.delete_object(Bucket=self.bucket, Key=key)
        logger.info("storage: deleted %s", key)

    async def delete_urls(self, *urls: str | None) -> None:
        """
        Remove the objects behind public URLs owned by this bucket.

        Used after the database row is gone; a failure leaves an orphaned
        object, which is logged rather than failing the request.
        """
        for url in urls:
            key = self.key_from_url(url) if url else None
            if key is None:
                continue
            try:
                await self.delete(key)
            except ClientError as e:
                logger.warning("storage: could not delete %s: %s", key, e)


storage = StorageService()
