"""
Input models for request validation using Pydantic.

Request bodies use the camelCase field names of the public API; the models
accept either the alias or the Python field name.
"""

import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class RegisterUserRequest(_RequestModel):
    """Request model for registering a new user."""

    username: Annotated[str, Field(min_length=1, max_length=128, examples=['john'])]
    password: Annotated[str, Field(min_length=1, examples=['Str0ngPassw0rd!'])]
    email: Annotated[str, Field(examples=['john.doe@example.com'])]

    @field_validator('email')
    @classmethod
    def validate_email_format(cls, v: str) -> str:
        """Validate email format."""
        if not re.match(EMAIL_PATTERN, v):
            raise ValueError('Invalid email format')
        return v.lower()


class ConfirmRegistrationRequest(_RequestModel):
    """Request model for confirming a registration with the emailed code."""

    username: Annotated[str, Field(min_length=1, max_length=128)]
    confirmation_code: Annotated[str, Field(min_length=1, alias='confirmationCode')]


class AuthenticateRequest(_RequestModel):
    """Request model for username/password authentication."""

    username: Annotated[str, Field(min_length=1, max_length=128)]
    password: Annotated[str, Field(min_length=1)]


class InitiatePasswordResetRequest(_RequestModel):
    """Request model for starting the forgot-password flow."""

    username: Annotated[str, Field(min_length=1, max_length=128)]


class CompletePasswordResetRequest(_RequestModel):
    """Request model for finishing the forgot-password flow."""

    username: Annotated[str, Field(min_length=1, max_length=128)]
    new_password: Annotated[str, Field(min_length=1, alias='newPassword')]
    confirmation_code: Annotated[str, Field(min_length=1, alias='confirmationCode')]


class UpdateUserRequest(_RequestModel):
    """Request model for partial user updates. Passwords change only through reset."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra='forbid')

    username: Annotated[str | None, Field(default=None, min_length=1, max_length=128)] = None
    email: Annotated[str | None, Field(default=None)] = None

    @field_validator('email')
    @classmethod
    def validate_email_format(cls, v: str | None) -> str | None:
        """Validate email format if provided."""
        if v is not None and not re.match(EMAIL_PATTERN, v):
            raise ValueError('Invalid email format')
        return v.lower() if v is not None else v


class UploadFileRequest(_RequestModel):
    """Request model for uploading a base64 encoded file."""

    file: Annotated[str, Field(min_length=1, description='Base64 encoded file content')]
    filename: Annotated[str, Field(min_length=1, max_length=1024, examples=['invoice.pdf'])]
    mime_type: Annotated[str, Field(min_length=1, alias='mimeType', examples=['application/pdf'])]
