"""
Environment variable models for type-safe configuration.

Everything that differs per deployment but is not a secret lives here; connection
details and secrets are read from SSM Parameter Store under PARAMETER_PREFIX.
"""

from typing import Annotated, Literal

from aws_lambda_env_modeler import BaseModel as BaseEnvModel, get_environment_variables
from pydantic import Field

from ecommerce.models.cache import CacheSnapshot


class UsersHandlerEnvVars(BaseEnvModel):
    """Environment variables for the users and files Lambda handlers."""

    # Root path of the application parameters in SSM
    PARAMETER_PREFIX: Annotated[str, Field(
        default='/myapp',
        description='SSM Parameter Store path prefix',
        pattern=r'^/.+',
    )] = '/myapp'

    AWS_REGION: Annotated[str, Field(
        default='us-east-1',
        description='AWS region for service deployment'
    )] = 'us-east-1'

    ENVIRONMENT: Annotated[str, Field(
        default='dev',
        description='Deployment environment name',
        pattern=r'^(dev|staging|prod|test)$'
    )] = 'dev'

    POWERTOOLS_SERVICE_NAME: Annotated[str, Field(
        default='ecommerce-backend',
        description='Service name for AWS Powertools'
    )] = 'ecommerce-backend'

    POWERTOOLS_METRICS_NAMESPACE: Annotated[str, Field(
        default='EcommerceBackend',
        description='Namespace for CloudWatch metrics'
    )] = 'EcommerceBackend'

    LOG_LEVEL: Annotated[str, Field(
        default='INFO',
        description='Log level for application logging',
        pattern=r'^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$'
    )] = 'INFO'

    # Cache settings
    USER_CACHE_TTL_SECONDS: Annotated[int, Field(
        default=3600,
        description='TTL for user and user page cache entries',
        ge=1,
        le=86400
    )] = 3600

    CACHE_CREATE_SNAPSHOT: Annotated[CacheSnapshot, Field(
        default=CacheSnapshot.INPUT,
        description='Entity state cached on create: the input entity or the persisted row'
    )] = CacheSnapshot.INPUT

    # Delete the Cognito user when a registration fails after sign-up
    ROLLBACK_IDENTITY_PROVIDER: Annotated[Literal['true', 'false'], Field(
        default='true',
        description='Compensate failed registrations in Cognito (true/false)'
    )] = 'true'

    # Create missing tables on cold start
    DB_SYNCHRONIZE: Annotated[Literal['true', 'false'], Field(
        default='false',
        description='Create database tables on startup (true/false)'
    )] = 'false'

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == 'prod'

    @property
    def rollback_identity_provider(self) -> bool:
        return self.ROLLBACK_IDENTITY_PROVIDER == 'true'

    @property
    def db_synchronize(self) -> bool:
        return self.DB_SYNCHRONIZE == 'true'


def get_handler_env_vars() -> UsersHandlerEnvVars:
    """
    Get typed environment variables for Lambda handlers.

    Returns:
        Validated environment variables model instance
    """
    return get_environment_variables(model=UsersHandlerEnvVars)
