"""Write payloads accepted by the API.

Field declaration order is significant: when a payload has several problems
the first field listed here is the one reported.
"""

import base64
import binascii
import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from canteen.backend.models.meal import MEAL_TYPES

EMAIL_REGEX = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")


def _reject_null(value: Any) -> Any:
    # an explicit null is not the same as leaving an optional field out
    if value is None:
        raise PydanticCustomError("string.base", "must be a string")
    return value


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise PydanticCustomError("number.base", "must be a number")
    return value


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class AllergenicIn(_Payload):
    name: str = Field(..., min_length=3, max_length=255)
    picture: Optional[str] = Field(None, min_length=1)

    @field_validator("picture", mode="before")
    @classmethod
    def picture_not_null(cls, value: Any) -> Any:
        return _reject_null(value)

    @field_validator("picture")
    @classmethod
    def validate_picture(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if len(value) % 4 != 0:
            raise PydanticCustomError("string.base64", "must be a valid base64 string")
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise PydanticCustomError("string.base64", "must be a valid base64 string")
        return value


class MealIn(_Payload):
    type: str
    description: str = Field(..., min_length=1, max_length=500)
    price: float = Field(..., ge=0, le=100)
    allergenics: List[str]

    @field_validator("price", mode="before")
    @classmethod
    def price_not_bool(cls, value: Any) -> Any:
        return _reject_bool(value)

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        if value not in MEAL_TYPES:
            raise PydanticCustomError(
                "any.only",
                "must be one of [{valids}]",
                {"valids": ", ".join(MEAL_TYPES)},
            )
        return value


class RatingIn(_Payload):
    user_id: str = Field(..., alias="userId", min_length=5, max_length=25)
    rating: int = Field(..., ge=1, le=5)
    description: Optional[str] = Field(None, min_length=1, max_length=500)

    @field_validator("rating", mode="before")
    @classmethod
    def rating_not_bool(cls, value: Any) -> Any:
        return _reject_bool(value)

    @field_validator("description", mode="before")
    @classmethod
    def description_not_null(cls, value: Any) -> Any:
        return _reject_null(value)


class MenuIn(_Payload):
    date: datetime
    meals: List[str]

    @field_validator("date", mode="before")
    @classmethod
    def numbers_are_milliseconds(cls, value: Any) -> Any:
        # numeric dates are epoch milliseconds
        if isinstance(value, bool):
            raise PydanticCustomError(
                "date.base", "must be a number of milliseconds or valid date string"
            )
        if isinstance(value, (int, float)):
            try:
                return datetime.fromtimestamp(value / 1000)
            except (OverflowError, OSError, ValueError):
                raise PydanticCustomError(
                    "date.base",
                    "must be a number of milliseconds or valid date string",
                )
        return value

    @field_validator("date")
    @classmethod
    def to_local_time(cls, value: datetime) -> datetime:
        # menus are compared by local calendar day, so keep naive local time
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value


class SignInRequest(_Payload):
    email: str
    password: str = Field(..., min_length=4, max_length=1024)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        if value == "":
            raise PydanticCustomError("string.empty", "is not allowed to be empty")
        stripped = value.strip()
        if not EMAIL_REGEX.match(stripped):
            raise PydanticCustomError("string.email", "must be a valid email")
        return stripped.lower()


class ResponseModel(BaseModel):
    """Base for response bodies; ids go over the wire as ``_id``."""

    model_config = ConfigDict(populate_by_name=True)
