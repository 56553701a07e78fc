"""Payload validation with single, human-readable error messages.

Pydantic reports every problem it finds; clients of this API expect exactly
one message naming the first offending field, in the wording the web
clients already display (``"name" is required``, ``"rating" must be
an integer`` ...). :func:`first_error_message` does that translation for both
``ValidationError`` and FastAPI's ``RequestValidationError``.
"""

from typing import Any, Dict, Mapping, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

# error types raised through PydanticCustomError in canteen.backend.schemas;
# their message is already the tail of the sentence
CUSTOM_ERROR_TYPES = frozenset(
    {
        "any.only",
        "date.base",
        "number.base",
        "string.base",
        "string.base64",
        "string.email",
        "string.empty",
    }
)

_NUMBER_ERRORS = frozenset(
    {"int_type", "int_parsing", "float_type", "float_parsing", "finite_number"}
)
_OBJECT_ERRORS = frozenset({"model_type", "model_attributes_type", "dict_type"})


class PayloadValidationError(ValueError):
    """Raised by :func:`validate_payload`; ``message`` is client-facing."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _label(loc: Sequence[Any]) -> str:
    parts = list(loc)
    if parts and parts[0] in ("body", "query", "path", "cookie", "header"):
        parts = parts[1:]
    if not parts:
        return "value"
    return str(parts[-1])


def _format_limit(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_error(error: Mapping[str, Any]) -> str:
    error_type = error.get("type", "")
    ctx: Dict[str, Any] = error.get("ctx") or {}
    label = f'"{_label(error.get("loc", ()))}"'

    if error_type in CUSTOM_ERROR_TYPES:
        return f"{label} {error.get('msg', '')}"
    if error_type == "missing":
        return f"{label} is required"
    if error_type == "extra_forbidden":
        return f"{label} is not allowed"
    if error_type == "string_type":
        return f"{label} must be a string"
    if error_type == "string_too_short":
        if error.get("input") == "":
            return f"{label} is not allowed to be empty"
        return (
            f"{label} length must be at least {ctx.get('min_length')} characters long"
        )
    if error_type == "string_too_long":
        return (
            f"{label} length must be less than or equal to "
            f"{ctx.get('max_length')} characters long"
        )
    if error_type == "int_from_float":
        return f"{label} must be an integer"
    if error_type in _NUMBER_ERRORS:
        return f"{label} must be a number"
    if error_type == "greater_than_equal":
        return f"{label} must be larger than or equal to {_format_limit(ctx.get('ge'))}"
    if error_type == "less_than_equal":
        return f"{label} must be less than or equal to {_format_limit(ctx.get('le'))}"
    if error_type == "list_type":
        return f"{label} must be an array"
    if error_type in _OBJECT_ERRORS:
        return f"{label} must be an object"
    if error_type == "json_invalid":
        return '"value" must be valid JSON'
    if error_type.startswith("datetime") or error_type.startswith("date_"):
        return f"{label} must be a number of milliseconds or valid date string"
    return f"{label} {error.get('msg', 'is invalid')}"


def first_error_message(errors: Sequence[Mapping[str, Any]]) -> str:
    if not errors:
        return "Invalid request"
    return format_error(errors[0])


def validate_payload(model: Type[ModelT], payload: Any) -> ModelT:
    """Validate ``payload`` against ``model`` or raise with the first error."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise PayloadValidationError(first_error_message(exc.errors())) from exc
