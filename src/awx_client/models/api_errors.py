"""Models for error bodies returned by the Airwallex API.

The API reports failures as ``{code, message, source, errors, details}``.
``details`` is a plain string for some errors (e.g. ``access_denied``) and
an object with a nested ``errors`` list for validation failures. Bodies are
sanitised on parse so oversized upstream content never reaches logs or
callers untrimmed.
"""

import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

MAX_MESSAGE_LENGTH = 500
MAX_CODE_LENGTH = 100
MAX_SOURCE_LENGTH = 200
MAX_FIELD_ERRORS = 20


def _truncate(value: str, limit: int, ellipsis: bool = False) -> str:
    if len(value) <= limit:
        return value
    return value[:limit] + ("..." if ellipsis else "")


class FieldError(BaseModel):
    """A single field validation error reported by the API."""

    source: str = ""
    code: str = ""
    message: str = ""
    params: Optional[Dict[str, Any]] = None

    def sanitized(self) -> "FieldError":
        return self.model_copy(
            update={
                "source": _truncate(self.source, MAX_SOURCE_LENGTH),
                "code": _truncate(self.code, MAX_CODE_LENGTH),
                "message": _truncate(self.message, MAX_MESSAGE_LENGTH, ellipsis=True),
            }
        )

    def describe(self) -> str:
        """Return a human readable description of the field error."""
        if self.message:
            return self.message
        if self.params and "value_options" in self.params:
            return f"must be one of: {self.params['value_options']}"
        return f"error code {self.code}"


class APIErrorDetails(BaseModel):
    """``details`` member of an error body: a string or nested field errors."""

    text: str = ""
    errors: List[FieldError] = Field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["APIErrorDetails"]:
        if raw is None:
            return None
        if isinstance(raw, str):
            return cls(text=raw)
        if isinstance(raw, dict):
            try:
                return cls(errors=raw.get("errors") or [])
            except ValidationError:
                return cls()
        # Unparseable details are ignored
        return cls()


class APIErrorBody(BaseModel):
    """Parsed API error body.

    :param code: Machine readable error code
    :param message: Human readable message
    :param source: Field or parameter the error refers to
    :param errors: Top-level field errors
    :param details: Optional string or nested field errors
    """

    code: str = ""
    message: str = ""
    source: str = ""
    errors: List[FieldError] = Field(default_factory=list)
    details: Optional[APIErrorDetails] = None

    @field_validator("details", mode="before")
    @classmethod
    def _coerce_details(cls, value: Union[str, Dict[str, Any], None, APIErrorDetails]):
        if isinstance(value, APIErrorDetails):
            return value
        return APIErrorDetails.from_raw(value)

    @classmethod
    def unknown(
        cls, message: str = "An error occurred processing the API response"
    ) -> "APIErrorBody":
        return cls(code="unknown_error", message=message)

    @property
    def field_errors(self) -> List[FieldError]:
        """Field errors from the top level, falling back to ``details``."""
        if self.errors:
            return self.errors
        if self.details is not None:
            return self.details.errors
        return []

    def sanitized(self) -> "APIErrorBody":
        """Return a copy with every field length-limited."""
        details = None
        if self.details is not None:
            details = APIErrorDetails(
                text=_truncate(self.details.text, MAX_MESSAGE_LENGTH, ellipsis=True),
                errors=[
                    fe.sanitized() for fe in self.details.errors[:MAX_FIELD_ERRORS]
                ],
            )
        return self.model_copy(
            update={
                "code": _truncate(self.code, MAX_CODE_LENGTH),
                "message": _truncate(self.message, MAX_MESSAGE_LENGTH, ellipsis=True),
                "source": _truncate(self.source, MAX_SOURCE_LENGTH),
                "errors": [fe.sanitized() for fe in self.errors[:MAX_FIELD_ERRORS]],
                "details": details,
            }
        )

    def __str__(self) -> str:
        msg = f"{self.code}: {self.message}"
        if self.source:
            msg += f" (source: {self.source})"
        if self.details is not None and self.details.text and (
            self.details.text != self.message
        ):
            msg += f" (details: {self.details.text})"
        field_errors = self.field_errors
        if field_errors:
            msg += "\nField errors:"
            for fe in field_errors:
                msg += f"\n  - {fe.source}: {fe.describe()}"
        return msg


def parse_api_error(body: Union[bytes, str, None]) -> APIErrorBody:
    """Parse and sanitise an API error body.

    Never raises: malformed or empty bodies produce an ``unknown_error``
    placeholder so callers always get something to report.

    :param body: Raw response body
    :return: Sanitised error body
    """
    try:
        data = json.loads(body) if body else None
    except (TypeError, ValueError):
        return APIErrorBody.unknown()
    if not isinstance(data, dict):
        return APIErrorBody.unknown()

    try:
        parsed = APIErrorBody.model_validate(data)
    except ValidationError:
        return APIErrorBody.unknown()

    parsed = parsed.sanitized()
    if not parsed.code and not parsed.message:
        return APIErrorBody.unknown("An error occurred but no details were provided")
    return parsed
