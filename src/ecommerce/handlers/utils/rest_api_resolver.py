"""
REST API resolver utilities shared by the Lambda handlers.

Builds API Gateway REST resolvers with OpenAPI documentation, parses request
bodies and turns service outcomes into HttpResponse envelopes.
"""

import json
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

from aws_lambda_powertools.event_handler import APIGatewayRestResolver, CORSConfig, Response, content_types
from aws_lambda_powertools.event_handler.openapi.models import Tag
from aws_lambda_powertools.metrics import MetricUnit
from pydantic import ValidationError

from ecommerce.handlers.utils.errors import (
    BaseServiceError,
    ValidationError as ServiceValidationError,
    get_http_status_code,
    log_error_metrics,
)
from ecommerce.handlers.utils.observability import logger, metrics
from ecommerce.models.output import HttpResponse

# API path constants
USERS_PATH = '/users'
FILES_PATH = '/files'

# OpenAPI tags for documentation
USERS_TAG = Tag(name='Users', description='Registration, authentication and user management')
FILES_TAG = Tag(name='Files', description='Encrypted file uploads')

cors_config = CORSConfig(
    allow_origin='*',
    max_age=600,
    allow_headers=['content-type', 'authorization'],
)


def build_resolver(tags: List[Tag]) -> APIGatewayRestResolver:
    """API Gateway REST resolver with Swagger served at ``/swagger``."""
    resolver = APIGatewayRestResolver(cors=cors_config)
    resolver.enable_swagger(
        path='/swagger',
        title='E-commerce Backend API',
        version='1.0.0',
        description='User registration, authentication, password reset and file upload',
        tags=tags,
    )
    return resolver


def api_response(envelope: HttpResponse, headers: Optional[Dict[str, str]] = None) -> Response:
    """HTTP response whose status code and body both come from the envelope."""
    return Response(
        status_code=envelope.status_code,
        content_type=content_types.APPLICATION_JSON,
        body=envelope.to_body(),
        headers=headers,
    )


def parse_json_body(resolver: APIGatewayRestResolver) -> Dict[str, Any]:
    """Decode the current request body; an absent body is an empty object."""
    try:
        body = json.loads(resolver.current_event.body or "{}")
    except json.JSONDecodeError as e:
        raise ServiceValidationError(message="Invalid JSON in request body") from e
    if not isinstance(body, dict):
        raise ServiceValidationError(message="Request body must be a JSON object")
    return body


def parse_int(value: Optional[str], name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ServiceValidationError(message=f"{name} must be an integer") from e


def handle_service_errors(func: Callable[..., Response]) -> Callable[..., Response]:
    """Decorator to handle service errors and convert them to envelope responses."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Response:
        try:
            return func(*args, **kwargs)
        except BaseServiceError as e:
            log_error_metrics(e)
            return api_response(HttpResponse.failure(
                message=e.user_message,
                status_code=get_http_status_code(e),
                error=e.error_code,
            ))
        except ValidationError as e:
            # Pydantic request validation
            logger.error("Request validation failed", extra={
                "validation_errors": str(e),
                "error_count": e.error_count(),
            })
            metrics.add_metric(name="ValidationError", unit=MetricUnit.Count, value=1)

            fields = ', '.join(str(error["loc"][-1]) for error in e.errors() if error["loc"])
            return api_response(HttpResponse.failure(
                message=f"Missing or invalid fields: {fields}" if fields else "Request validation failed",
                status_code=400,
                error="VALIDATION_ERROR",
            ))
        except Exception as e:
            logger.exception("Unexpected error in handler", extra={
                "error": str(e),
                "function_name": func.__name__,
            })
            metrics.add_metric(name="UnexpectedError", unit=MetricUnit.Count, value=1)
            return api_response(HttpResponse.failure(
                message="An unexpected error occurred",
                status_code=500,
                error="INTERNAL_SERVER_ERROR",
            ))

    return wrapper
