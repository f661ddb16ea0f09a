"""
Amazon Cognito identity provider.

Pool and app client ids come from Parameter Store. Every method raises
IdentityProviderError on failure; the underlying ClientError is chained.
"""

import asyncio
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from ecommerce.handlers.utils.errors import ExternalServiceError
from ecommerce.handlers.utils.observability import logger, tracer
from ecommerce.integrations.parameter_store import COGNITO_CLIENT_ID, COGNITO_USER_POOL_ID, ParameterStore


class IdentityProviderError(ExternalServiceError):
    """Raised when a Cognito call fails."""

    def __init__(self, message: str):
        super().__init__(message=message, service_name="cognito", error_code="IDENTITY_PROVIDER_ERROR")


class CognitoIdentityProvider:
    """User pool operations used by the user workflows."""

    def __init__(self, parameter_store: ParameterStore, client: Optional[Any] = None, region_name: Optional[str] = None) -> None:
        self.parameter_store = parameter_store
        self.client = client or boto3.client('cognito-idp', region_name=region_name)

    async def _call(self, operation: str, failure_message: str, username: str, **kwargs: Any) -> dict:
        try:
            return await asyncio.to_thread(getattr(self.client, operation), **kwargs)
        except ClientError as e:
            logger.error(
                f'[CognitoIdentityProvider] {operation} failed for user: {username}',
                extra={'error_code': e.response['Error']['Code']},
            )
            raise IdentityProviderError(failure_message) from e

    @tracer.capture_method
    async def authenticate(self, username: str, password: str) -> str:
        """Return the ID token for valid credentials."""
        logger.info(f'[CognitoIdentityProvider] Authenticating user: {username}')
        user_pool_id = await self.parameter_store.get_parameter(COGNITO_USER_POOL_ID)
        client_id = await self.parameter_store.get_parameter(COGNITO_CLIENT_ID)

        response = await self._call(
            'admin_initiate_auth',
            'Authentication failed',
            username,
            UserPoolId=user_pool_id,
            ClientId=client_id,
            AuthFlow='ADMIN_NO_SRP_AUTH',
            AuthParameters={'USERNAME': username, 'PASSWORD': password},
        )
        token = response.get('AuthenticationResult', {}).get('IdToken')
        if not token:
            logger.error(f'[CognitoIdentityProvider] No token returned for user: {username}')
            raise IdentityProviderError('Authentication token missing')
        return token

    @tracer.capture_method
    async def register_user(self, username: str, password: str, email: str) -> None:
        logger.info(f'[CognitoIdentityProvider] Registering user: {username}')
        client_id = await self.parameter_store.get_parameter(COGNITO_CLIENT_ID)
        await self._call(
            'sign_up',
            'Registration failed',
            username,
            ClientId=client_id,
            Username=username,
            Password=password,
            UserAttributes=[{'Name': 'email', 'Value': email}],
        )

    @tracer.capture_method
    async def confirm_registration(self, username: str, confirmation_code: str) -> None:
        logger.info(f'[CognitoIdentityProvider] Confirming registration for user: {username}')
        client_id = await self.parameter_store.get_parameter(COGNITO_CLIENT_ID)
        await self._call(
            'confirm_sign_up',
            'User confirmation failed',
            username,
            ClientId=client_id,
            Username=username,
            ConfirmationCode=confirmation_code,
        )

    @tracer.capture_method
    async def initiate_password_reset(self, username: str) -> None:
        logger.info(f'[CognitoIdentityProvider] Initiating password reset for user: {username}')
        client_id = await self.parameter_store.get_parameter(COGNITO_CLIENT_ID)
        await self._call(
            'forgot_password',
            'Password reset initiation failed',
            username,
            ClientId=client_id,
            Username=username,
        )

    @tracer.capture_method
    async def complete_password_reset(self, username: str, new_password: str, confirmation_code: str) -> None:
        logger.info(f'[CognitoIdentityProvider] Completing password reset for user: {username}')
        client_id = await self.parameter_store.get_parameter(COGNITO_CLIENT_ID)
        await self._call(
            'confirm_forgot_password',
            'Password reset failed',
            username,
            ClientId=client_id,
            Username=username,
            Password=new_password,
            ConfirmationCode=confirmation_code,
        )

    @tracer.capture_method
    async def delete_user(self, username: str) -> None:
        """Remove a pool user. Only used to compensate a failed registration."""
        logger.info(f'[CognitoIdentityProvider] Deleting user: {username}')
        user_pool_id = await self.parameter_store.get_parameter(COGNITO_USER_POOL_ID)
        await self._call(
            'admin_delete_user',
            'User deletion failed',
            username,
            UserPoolId=user_pool_id,
            Username=username,
        )
