"""
Output models for API responses using Pydantic.

Every response body is an ``HttpResponse`` envelope:
``{statusCode, message, data?, error?}``.
"""

from datetime import datetime
from typing import Annotated, Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from ecommerce.models.user import User

T = TypeVar('T')


class HttpResponse(BaseModel):
    """Uniform response envelope."""

    status_code: Annotated[int, Field(alias='statusCode', examples=[200, 400, 404, 500])]
    message: Annotated[str, Field(examples=['Success'])]
    data: Optional[Any] = None
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def success(cls, data: Any, message: str = 'Success', status_code: int = 200) -> 'HttpResponse':
        return cls(status_code=status_code, message=message, data=data)

    @classmethod
    def failure(
        cls,
        message: str = 'An error occurred',
        status_code: int = 500,
        error: Optional[str] = None,
    ) -> 'HttpResponse':
        return cls(status_code=status_code, message=message, error=error)

    def to_body(self) -> str:
        """Serialize with the public field names, omitting empty fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class UserOutput(BaseModel):
    """Public view of a user. The password ciphertext is never exposed."""

    id: Optional[int] = None
    username: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, user: User) -> 'UserOutput':
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class AuthenticationOutput(BaseModel):
    """Token issued by the identity provider plus the resolved user."""

    token: str
    user: UserOutput


class PageOutput(BaseModel, Generic[T]):
    """One page of results with the total row count."""

    data: List[T]
    count: int


class MessageOutput(BaseModel):
    """Plain acknowledgement returned by workflows without a payload."""

    message: str


class FileUploadOutput(BaseModel):
    """Location of an uploaded object."""

    file_url: Annotated[str, Field(alias='fileUrl')]

    model_config = ConfigDict(populate_by_name=True)
