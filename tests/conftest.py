"""
Pytest configuration and shared fixtures for the e-commerce backend.

This module provides common test fixtures and configuration used across
unit and integration tests.
"""

import json
import os
from typing import Any, Callable, Dict, Optional
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Test environment configuration, set before the service modules are imported
os.environ.update({
    "AWS_DEFAULT_REGION": "us-east-1",
    "AWS_REGION": "us-east-1",
    "AWS_ACCESS_KEY_ID": "test",
    "AWS_SECRET_ACCESS_KEY": "test",
    "ENVIRONMENT": "test",
    "PARAMETER_PREFIX": "/myapp",
    "POWERTOOLS_SERVICE_NAME": "test-ecommerce-backend",
    "POWERTOOLS_METRICS_NAMESPACE": "TestEcommerceBackend",
    "LOG_LEVEL": "DEBUG",
    "POWERTOOLS_TRACE_DISABLED": "true",  # Disable X-Ray in tests
})

from ecommerce.dal.database import DatabaseSettings, SqlAlchemyStore, create_engine, create_schema, create_session_factory
from ecommerce.models.user import User


class InMemoryCache:
    """Dict-backed cache whose methods are AsyncMocks, so calls can be asserted."""

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.get = AsyncMock(side_effect=self._get)
        self.set = AsyncMock(side_effect=self._set)
        self.delete = AsyncMock(side_effect=self._delete)

    async def _get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def _set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def _delete(self, key: str) -> None:
        self.data.pop(key, None)
        self.ttls.pop(key, None)

    def seed(self, key: str, value: Any) -> None:
        self.data[key] = value if isinstance(value, str) else json.dumps(value)


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def store() -> AsyncMock:
    """Backing store double; every method is an AsyncMock."""
    return AsyncMock()


# Sample data fixtures
@pytest.fixture
def make_user() -> Callable[..., User]:
    def _make(user_id: Optional[int] = None, username: str = "john", email: str = "john.doe@example.com", password: str = "cipher") -> User:
        return User(id=user_id, username=username, email=email, password=password)

    return _make


@pytest.fixture
def sample_user(make_user) -> User:
    return make_user(user_id=1)


# Database fixtures
@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """SQLite database in a temporary file with the schema created."""
    engine = create_engine(DatabaseSettings(type="sqlite", name=str(tmp_path / "test.db")))
    await create_schema(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def user_store(session_factory) -> SqlAlchemyStore[User]:
    return SqlAlchemyStore(session_factory, User)


# Lambda fixtures
@pytest.fixture
def lambda_context():
    """Create a mock Lambda context for testing."""
    context = Mock()
    context.function_name = "test-lambda-function"
    context.function_version = "1"
    context.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:test-lambda-function"
    context.memory_limit_in_mb = 512
    context.get_remaining_time_in_millis = lambda: 30000
    context.aws_request_id = "test-request-id-123"
    context.log_group_name = "/aws/lambda/test-lambda-function"
    context.log_stream_name = "2024/01/01/[$LATEST]test123"
    return context


@pytest.fixture
def api_gateway_event() -> Callable[..., Dict[str, Any]]:
    """Factory for API Gateway REST proxy events."""

    def _event(
        method: str,
        path: str,
        body: Optional[Any] = None,
        query: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        if body is not None and not isinstance(body, str):
            body = json.dumps(body)
        return {
            "resource": path,
            "path": path,
            "httpMethod": method,
            "headers": {
                "Content-Type": "application/json",
                "User-Agent": "test-agent/1.0",
            },
            "multiValueHeaders": {},
            "queryStringParameters": query,
            "multiValueQueryStringParameters": {k: [v] for k, v in query.items()} if query else None,
            "pathParameters": None,
            "stageVariables": None,
            "requestContext": {
                "requestId": "test-request-id-123",
                "accountId": "123456789012",
                "stage": "test",
                "httpMethod": method,
                "path": path,
                "resourcePath": path,
                "protocol": "HTTP/1.1",
                "requestTime": "01/Jan/2024:12:00:00 +0000",
                "requestTimeEpoch": 1704110400000,
                "identity": {
                    "sourceIp": "127.0.0.1",
                    "userAgent": "test-agent/1.0",
                },
            },
            "body": body,
            "isBase64Encoded": False,
        }

    return _event


# Error simulation fixtures
@pytest.fixture
def client_error():
    """Build botocore ClientErrors for testing error handling."""
    from botocore.exceptions import ClientError

    def create_error(error_code: str, message: str = "Test error", operation_name: str = "TestOperation"):
        return ClientError(
            error_response={
                "Error": {
                    "Code": error_code,
                    "Message": message,
                }
            },
            operation_name=operation_name,
        )

    return create_error


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
