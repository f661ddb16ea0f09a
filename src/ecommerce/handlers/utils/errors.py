"""
Error taxonomy and HTTP error mapping for the e-commerce backend.

Services raise subclasses of BaseServiceError; handlers translate them into
HTTP status codes and the response envelope. Upstream failures are wrapped into
coarse workflow errors so callers only ever see a small set of messages.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from aws_lambda_powertools.metrics import MetricUnit
from pydantic import BaseModel, Field

from ecommerce.handlers.utils.observability import logger, metrics, tracer


class ErrorSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ErrorCategory(str, Enum):
    """Error categories; the category decides the HTTP status."""
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    WORKFLOW = "WORKFLOW"
    EXTERNAL_SERVICE = "EXTERNAL_SERVICE"
    CONFIGURATION = "CONFIGURATION"


HTTP_STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
}


class ErrorContext(BaseModel):
    """Where an error happened: the workflow, the user involved, the request."""

    operation: str = Field(description="Workflow or repository operation")
    correlation_id: Optional[str] = Field(default=None, description="API Gateway request id")
    username: Optional[str] = Field(default=None)
    entity_id: Optional[str] = Field(default=None)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    details: Dict[str, Any] = Field(default_factory=dict)


class BaseServiceError(Exception):
    """Base exception class for service errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.WORKFLOW,
        context: Optional[ErrorContext] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.category = category
        self.context = context
        self.user_message = user_message or message
        self.error_id = str(uuid.uuid4())

    def to_dict(self) -> Dict[str, Any]:
        """Structured form used in logs and trace metadata."""
        return {
            "error_id": self.error_id,
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.model_dump(mode="json") if self.context else None,
        }


class ValidationError(BaseServiceError):
    """Raised when required input is missing or malformed, before any side effect."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            context=context,
        )


class ResourceNotFoundError(BaseServiceError):
    def __init__(self, resource_type: str, resource_id: str, context: Optional[ErrorContext] = None):
        super().__init__(
            message=f"{resource_type} with ID '{resource_id}' not found",
            error_code="RESOURCE_NOT_FOUND",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.NOT_FOUND,
            context=context,
            user_message=f"{resource_type} not found",
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class WorkflowError(BaseServiceError):
    """Raised by a domain workflow with its generic, user-facing message."""

    def __init__(
        self,
        message: str,
        error_code: str = "WORKFLOW_ERROR",
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.WORKFLOW,
            context=context,
        )


class ExternalServiceError(BaseServiceError):
    """Raised when a Cognito, KMS, S3 or SSM call fails."""

    def __init__(
        self,
        message: str,
        service_name: str,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.EXTERNAL_SERVICE,
            context=context,
            user_message="A required service is temporarily unavailable. Please try again later.",
        )
        self.service_name = service_name


class ConfigurationError(BaseServiceError):
    """Raised at startup when a parameter is missing or unsupported."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            user_message="The service is misconfigured.",
        )


def create_error_context(
    operation: str,
    username: Optional[str] = None,
    entity_id: Optional[Any] = None,
    **details: Any,
) -> ErrorContext:
    """Error context stamped with the correlation id of the current request."""
    return ErrorContext(
        operation=operation,
        correlation_id=logger.get_correlation_id(),
        username=username,
        entity_id=str(entity_id) if entity_id is not None else None,
        details=details,
    )


@tracer.capture_method
def log_error_metrics(error: BaseServiceError) -> None:
    """Emit the error counters, annotate the trace and log the error once."""
    metrics.add_metric(name="ServiceErrors", unit=MetricUnit.Count, value=1)
    metrics.add_metric(name=f"{error.category.value.title().replace('_', '')}Errors", unit=MetricUnit.Count, value=1)

    tracer.put_annotation("error_code", error.error_code)
    tracer.put_metadata("error_details", error.to_dict())

    logger.error("Service error occurred", extra=error.to_dict())


def get_http_status_code(error: BaseServiceError) -> int:
    return HTTP_STATUS_BY_CATEGORY.get(error.category, 500)
