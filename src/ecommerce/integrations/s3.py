"""
Amazon S3 file storage with KMS server-side encryption.
"""

import asyncio
from typing import Any, Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import ClientError

from ecommerce.handlers.utils.errors import ExternalServiceError
from ecommerce.handlers.utils.observability import logger, tracer
from ecommerce.integrations.parameter_store import S3_BUCKET_NAME, S3_KMS_KEY_ID, ParameterStore


class FileStorageError(ExternalServiceError):
    """Raised when an upload fails."""

    def __init__(self, message: str):
        super().__init__(message=message, service_name="s3", error_code="FILE_STORAGE_ERROR")


class S3FileStorage:
    """Uploads objects to the bucket named in Parameter Store."""

    def __init__(self, parameter_store: ParameterStore, client: Optional[Any] = None, region_name: Optional[str] = None) -> None:
        self.parameter_store = parameter_store
        self.client = client or boto3.client('s3', region_name=region_name)

    @tracer.capture_method
    async def upload_file(self, key: str, body: bytes, content_type: str) -> str:
        """
        Upload an object encrypted with the configured KMS key.

        Args:
            key: Object key
            body: Object content
            content_type: MIME type stored with the object

        Returns:
            HTTPS URL of the uploaded object

        Raises:
            FileStorageError: If S3 rejects the upload
        """
        bucket = await self.parameter_store.get_parameter(S3_BUCKET_NAME)
        kms_key_id = await self.parameter_store.get_parameter(S3_KMS_KEY_ID)

        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                ServerSideEncryption='aws:kms',
                SSEKMSKeyId=kms_key_id,
            )
        except ClientError as e:
            logger.error('S3 upload failed', extra={'bucket': bucket, 'key': key, 'error_code': e.response['Error']['Code']})
            raise FileStorageError('File upload failed') from e

        region = self.client.meta.region_name
        location = f'https://{bucket}.s3.{region}.amazonaws.com/{quote(key)}'
        logger.info('Object uploaded', extra={'bucket': bucket, 'key': key, 'size': len(body)})
        return location
