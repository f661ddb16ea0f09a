"""
Adapters over the managed AWS services the backend depends on.

Each adapter exposes a narrow async contract and raises a subclass of
ExternalServiceError when the service call fails. Blocking boto3 calls run in
a worker thread.
"""

from ecommerce.integrations.cognito import CognitoIdentityProvider, IdentityProviderError
from ecommerce.integrations.kms import EncryptionError, KmsPasswordEncryptor
from ecommerce.integrations.parameter_store import ParameterNotFoundError, ParameterStore
from ecommerce.integrations.s3 import FileStorageError, S3FileStorage

__all__ = [
    'CognitoIdentityProvider',
    'EncryptionError',
    'FileStorageError',
    'IdentityProviderError',
    'KmsPasswordEncryptor',
    'ParameterNotFoundError',
    'ParameterStore',
    'S3FileStorage',
]
