"""
File upload workflow.
"""

import base64
import binascii

from aws_lambda_powertools.metrics import MetricUnit

from ecommerce.handlers.utils.errors import ExternalServiceError, ValidationError, WorkflowError
from ecommerce.handlers.utils.observability import logger, metrics, tracer
from ecommerce.integrations.s3 import S3FileStorage


class FileService:
    def __init__(self, storage: S3FileStorage) -> None:
        self.storage = storage

    @tracer.capture_method
    async def upload(self, file: str, filename: str, mime_type: str) -> str:
        """
        Decode a base64 payload and store it under ``filename``.

        Returns:
            URL of the stored object

        Raises:
            ValidationError: If any field is missing or the payload is not base64
            WorkflowError: If the upload fails
        """
        if not file or not filename or not mime_type:
            logger.warning('[FileService] Missing file or metadata in request')
            raise ValidationError('Missing file or metadata')

        try:
            body = base64.b64decode(file, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError('File content is not valid base64') from e

        logger.info('[FileService] File metadata parsed', extra={'filename': filename, 'mime_type': mime_type})
        try:
            file_url = await self.storage.upload_file(filename, body, mime_type)
        except ExternalServiceError as e:
            logger.error('[FileService] File upload failed', extra={'filename': filename, 'error': str(e)})
            raise WorkflowError('File upload failed') from e

        metrics.add_metric(name='FileUploaded', unit=MetricUnit.Count, value=1)
        logger.info('[FileService] File uploaded successfully', extra={'filename': filename, 'file_url': file_url})
        return file_url
