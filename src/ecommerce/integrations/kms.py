"""
AWS KMS password encryption.
"""

import asyncio
import base64
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from ecommerce.handlers.utils.errors import ExternalServiceError
from ecommerce.handlers.utils.observability import logger, tracer


class EncryptionError(ExternalServiceError):
    """Raised when KMS cannot encrypt or decrypt a value."""

    def __init__(self, message: str):
        super().__init__(message=message, service_name="kms", error_code="ENCRYPTION_ERROR")


class KmsPasswordEncryptor:
    """Encrypts secrets with a customer managed KMS key."""

    def __init__(self, client: Optional[Any] = None, region_name: Optional[str] = None) -> None:
        self.client = client or boto3.client('kms', region_name=region_name)

    @tracer.capture_method
    async def encrypt(self, plaintext: str, key_id: str) -> str:
        """Return the base64 encoded ciphertext of ``plaintext``."""
        try:
            response = await asyncio.to_thread(
                self.client.encrypt, KeyId=key_id, Plaintext=plaintext.encode('utf-8')
            )
        except ClientError as e:
            logger.error('KMS encrypt call failed', extra={'error_code': e.response['Error']['Code']})
            raise EncryptionError('Failed to encrypt password') from e

        ciphertext = response.get('CiphertextBlob')
        if not ciphertext:
            raise EncryptionError('Failed to encrypt password')
        return base64.b64encode(ciphertext).decode('ascii')

    @tracer.capture_method
    async def decrypt(self, ciphertext: str, key_id: str) -> str:
        """Inverse of ``encrypt``."""
        try:
            response = await asyncio.to_thread(
                self.client.decrypt, KeyId=key_id, CiphertextBlob=base64.b64decode(ciphertext)
            )
        except ClientError as e:
            logger.error('KMS decrypt call failed', extra={'error_code': e.response['Error']['Code']})
            raise EncryptionError('Failed to decrypt password') from e

        plaintext = response.get('Plaintext')
        if not plaintext:
            raise EncryptionError('Failed to decrypt password')
        return plaintext.decode('utf-8')
