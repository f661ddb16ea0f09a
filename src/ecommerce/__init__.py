"""
E-commerce backend service.

Three layers, as in the other Lambda services:

- handlers: API Gateway handlers, configuration and startup
- logic: user, password and file workflows
- dal: cache-augmented repositories over Redis and SQLAlchemy

``integrations`` holds the Cognito, KMS, S3 and SSM adapters and ``models``
the entities and request/response schemas.
"""

__version__ = "1.0.0"
__description__ = "Serverless e-commerce backend with cached repositories"

from ecommerce.handlers.utils.observability import logger, metrics, tracer
from ecommerce.models import CacheModel, CacheSnapshot, User

__all__ = [
    "CacheModel",
    "CacheSnapshot",
    "User",
    "logger",
    "tracer",
    "metrics",
]
