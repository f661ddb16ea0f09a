"""
AWS SSM Parameter Store integration.

Parameters are fetched once per process through the Powertools SSM provider
and kept in a process-local cache for the lifetime of the Lambda container.
"""

import asyncio
from typing import Dict, Optional

from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.parameters import SSMProvider
from aws_lambda_powertools.utilities.parameters.exceptions import GetParameterError

from ecommerce.handlers.utils.errors import ExternalServiceError
from ecommerce.handlers.utils.observability import logger, metrics, tracer

# Parameter names, relative to the configured prefix
REDIS_URL = 'redis/url'
DB_TYPE = 'db/type'
DB_HOST = 'db/host'
DB_PORT = 'db/port'
DB_USERNAME = 'db/username'
DB_PASSWORD = 'db/password'
DB_NAME = 'db/name'
KMS_KEY_ID = 'kms-key-id'
COGNITO_USER_POOL_ID = 'cognito/user-pool-id'
COGNITO_CLIENT_ID = 'cognito/client-id'
S3_BUCKET_NAME = 's3/bucket-name'
S3_KMS_KEY_ID = 's3/kms-key-id'


class ParameterNotFoundError(ExternalServiceError):
    """Raised when a parameter is missing or has no value."""

    def __init__(self, name: str):
        super().__init__(
            message=f"Could not fetch parameter: {name}",
            service_name="ssm",
            error_code="PARAMETER_NOT_FOUND",
        )
        self.name = name


class ParameterStore:
    """Cached, decrypted reads from SSM Parameter Store."""

    def __init__(
        self,
        prefix: str = '/myapp',
        provider: Optional[SSMProvider] = None,
    ) -> None:
        """
        Initialize the parameter store.

        Args:
            prefix: Path prepended to relative parameter names
            provider: Powertools SSM provider (a default one is created when omitted)
        """
        self.prefix = prefix.rstrip('/')
        self._provider = provider or SSMProvider()
        self._cache: Dict[str, str] = {}

    def path(self, name: str) -> str:
        """Absolute parameter path; names starting with '/' are used as is."""
        if name.startswith('/'):
            return name
        return f'{self.prefix}/{name}'

    @tracer.capture_method
    async def get_parameter(self, name: str) -> str:
        """
        Get a parameter value.

        Args:
            name: Parameter name, relative to the prefix or absolute

        Returns:
            Decrypted parameter value

        Raises:
            ParameterNotFoundError: If the parameter does not exist or is empty
        """
        path = self.path(name)
        if path in self._cache:
            logger.debug(f'Parameter "{path}" retrieved from cache')
            return self._cache[path]

        logger.info(f'Fetching parameter "{path}" from SSM')
        try:
            value = await asyncio.to_thread(self._provider.get, path, decrypt=True)
        except GetParameterError as e:
            logger.error(f'Error fetching parameter "{path}"', extra={'error': str(e)})
            metrics.add_metric(name='ParameterFetchFailure', unit=MetricUnit.Count, value=1)
            raise ParameterNotFoundError(path) from e

        if not value:
            logger.error(f'Parameter "{path}" not found or has no value')
            raise ParameterNotFoundError(path)

        self._cache[path] = value
        return value

    def clear(self) -> None:
        """Drop cached values so the next read goes to SSM."""
        self._cache.clear()
