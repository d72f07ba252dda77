import asyncio
import logging
import os
import uuid
from datetime import datetime, timezone

import boto3
from botocore.exceptions import ClientError
from fastapi import UploadFile

from marketplace.config import Settings
from marketplace.exceptions import BadRequest

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


class S3Storage:
    """Uploaded files (product images, payment proofs, avatars) in an S3 bucket."""

    def __init__(self):
        self._client = None
        self._bucket_ready = False

    def _s3(self):
        if self._client is None:
            session = boto3.session.Session()
            self._client = session.client(
                service_name="s3",
                endpoint_url=Settings.S3_ENDPOINT_URL,
                aws_access_key_id=Settings.S3_ACCESS_KEY,
                aws_secret_access_key=Settings.S3_SECRET_KEY,
            )
        return self._client

    def _ensure_bucket(self):
        if self._bucket_ready:
            return
        s3 = self._s3()
        try:
            s3.head_bucket(Bucket=Settings.S3_BUCKET)
        except ClientError as e:
            error_code = int(e.response['Error']['Code'])
            if error_code == 404:
                s3.create_bucket(Bucket=Settings.S3_BUCKET)
            else:
                raise
        self._bucket_ready = True

    def _put(self, key: str, content: bytes, content_type: str | None):
        self._ensure_bucket()
        extra = {"ContentType": content_type} if content_type else {}
        self._s3().put_object(Bucket=Settings.S3_BUCKET, Key=key, Body=content, **extra)

    async def save(self, file: UploadFile, folder: str) -> str:
        ext = os.path.splitext(file.filename or "")[1].lower()
        if ext not in IMAGE_EXTENSIONS:
            raise BadRequest(f"Unsupported file type: {ext or 'none'}")

        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        key = f"{folder}/{timestamp}-{uuid.uuid4().hex}{ext}"
        content = await file.read()

        await asyncio.to_thread(self._put, key, content, file.content_type)
        logger.info("Stored upload %s (%d bytes)", key, len(content))
        return f"{Settings.PUBLIC_FILES_URL}/{key}"

    async def delete(self, path: str):
        """Remove an object previously returned by ``save``; failures are only logged."""
        key = path.removeprefix(f"{Settings.PUBLIC_FILES_URL}/")
        try:
            await asyncio.to_thread(self._s3().delete_object, Bucket=Settings.S3_BUCKET, Key=key)
        except ClientError as e:
            logger.warning("Could not delete upload %s: %s", key, e)
            return
        logger.info("Deleted upload %s", key)


storage = S3Storage()
