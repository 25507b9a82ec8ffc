from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


# PUBLIC_INTERFACE
class TodoIn(BaseModel):
    """
    Schema for the body of create and replace requests.

    Only title and description are accepted; id and timestamps sent by the
    client are ignored since storage assigns them.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
            }
        },
    )

    title: str = Field(
        ...,
        description="Short title for the todo item",
        min_length=1,
        max_length=TITLE_MAX_LENGTH,
    )
    description: Optional[str] = Field(
        default=None,
        description="Optional detailed description",
        max_length=DESCRIPTION_MAX_LENGTH,
    )

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Any) -> Any:
        """
        Strip surrounding whitespace so a blank title fails the length check.
        The description is kept verbatim.
        """
        return v.strip() if isinstance(v, str) else v


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item. Serialized with camelCase keys.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": 123,
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "creationTime": "2025-01-25T10:15:30.123456",
                "modificationTime": "2025-01-26T09:00:00.000001",
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    creation_time: datetime = Field(..., description="Creation timestamp")
    modification_time: datetime = Field(..., description="Last modification timestamp")


class FieldValidationError(BaseModel):
    """One rejected field of a request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    field: str
    error_code: str
    error_message: str


# PUBLIC_INTERFACE
class ErrorDocument(BaseModel):
    """
    Error body returned for 4xx/5xx responses.

    validation_errors is only present for 400 responses caused by invalid input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: str = Field(..., description="HTTP status name, e.g. BAD_REQUEST")
    code: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Human readable summary")
    validation_errors: Optional[List[FieldValidationError]] = None
