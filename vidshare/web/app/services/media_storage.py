"""
Object storage for uploaded media.

Uploads happen outside this service; here the platform only needs to drop
assets it no longer references (replaced thumbnails, deleted videos).
"""
import asyncio
from functools import lru_cache
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import get_settings
from ..errors import FatalError
from .logging_service import get_logger

settings = get_settings()
logger = get_logger("storage")


class MediaStorage:
    """S3-backed asset store addressed by external id (the object key)."""

    def __init__(self):
        self.bucket_name = settings.S3_BUCKET_NAME
        self.s3_client = None
        if self.bucket_name:
            self.s3_client = self._init_s3_client()

    def _init_s3_client(self):
        config = Config(
            region_name=settings.S3_REGION,
            retries={'max_attempts': 3, 'mode': 'adaptive'},
        )
        kwargs = {'config': config}
        if settings.S3_ENDPOINT_URL:
            kwargs['endpoint_url'] = settings.S3_ENDPOINT_URL
        if settings.S3_ACCESS_KEY_ID and settings.S3_SECRET_ACCESS_KEY:
            kwargs['aws_access_key_id'] = settings.S3_ACCESS_KEY_ID
            kwargs['aws_secret_access_key'] = settings.S3_SECRET_ACCESS_KEY
        return boto3.client('s3', **kwargs)

    def is_available(self) -> bool:
        return self.s3_client is not None

    async def delete(self, external_id: Optional[str]):
        """Delete one asset. Missing ids are ignored."""
        if not external_id:
            return

        if not self.is_available():
            logger.event("asset_delete_skipped", "Object storage not configured", external_id=external_id)
            return

        try:
            await asyncio.to_thread(
                self.s3_client.delete_object, Bucket=self.bucket_name, Key=external_id
            )
        except (BotoCoreError, ClientError) as e:
            raise FatalError(f"Failed to delete asset {external_id}") from e

        logger.event("asset_deleted", external_id=external_id)


@lru_cache()
def get_media_storage() -> MediaStorage:
    return MediaStorage()
