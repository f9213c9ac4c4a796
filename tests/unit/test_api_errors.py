"""Tests for API error parsing and the exception hierarchy."""

import json

import pytest

from awx_client.exceptions import (
    APIError,
    AuthenticationError,
    AwxClientError,
    CircuitOpenError,
    ClientError,
    RateLimitError,
    ServerError,
    TransportError,
    UnauthorizedError,
    api_error_for_status,
    is_auth_error,
    is_circuit_open_error,
    is_not_found_error,
    is_rate_limit_error,
)
from awx_client.models import APIErrorBody, FieldError, parse_api_error
from awx_client.models.api_errors import (
    MAX_CODE_LENGTH,
    MAX_FIELD_ERRORS,
    MAX_MESSAGE_LENGTH,
    MAX_SOURCE_LENGTH,
)


class TestParseAPIError:
    def test_basic(self):
        err = parse_api_error(b'{"code": "invalid_argument", "message": "Bad request"}')
        assert err.code == "invalid_argument"
        assert err.message == "Bad request"

    def test_invalid_json(self):
        err = parse_api_error(b"not json")
        assert err.code == "unknown_error"
        assert err.message == "An error occurred processing the API response"

    @pytest.mark.parametrize("body", [b"", None, b"[1, 2]", b'"text"'])
    def test_non_object_bodies(self, body):
        assert parse_api_error(body).code == "unknown_error"

    def test_empty_fields(self):
        err = parse_api_error(b'{"code": "", "message": ""}')
        assert err.code == "unknown_error"
        assert err.message == "An error occurred but no details were provided"

    def test_field_errors(self):
        body = json.dumps(
            {
                "code": "validation_failed",
                "message": "The request failed our schema validation.",
                "errors": [
                    {
                        "source": "beneficiary.bank_details.swift_code",
                        "code": "field_required",
                        "message": "This field is required",
                    }
                ],
            }
        )
        err = parse_api_error(body)
        assert len(err.errors) == 1
        assert err.errors[0].source == "beneficiary.bank_details.swift_code"
        assert err.errors[0].code == "field_required"

    def test_nested_details_errors(self):
        body = json.dumps(
            {
                "code": "validation_failed",
                "message": "Validation error",
                "details": {
                    "errors": [
                        {
                            "source": "beneficiary.bank_details.account_name",
                            "code": "field_required",
                            "message": "Account name is required",
                        }
                    ]
                },
            }
        )
        err = parse_api_error(body)
        assert err.details is not None
        assert len(err.details.errors) == 1
        rendered = str(err)
        assert "beneficiary.bank_details.account_name" in rendered
        assert "Account name is required" in rendered

    def test_string_details(self):
        body = b'{"code": "access_denied", "message": "Denied", "details": "missing scope"}'
        err = parse_api_error(body)
        assert err.details.text == "missing scope"
        assert "(details: missing scope)" in str(err)

    def test_truncation(self):
        body = json.dumps(
            {
                "code": "c" * 500,
                "message": "m" * 2000,
                "source": "s" * 500,
                "details": "d" * 2000,
                "errors": [{"source": "f", "message": "x"}] * 50,
            }
        )
        err = parse_api_error(body)
        assert len(err.code) == MAX_CODE_LENGTH
        assert err.message == "m" * MAX_MESSAGE_LENGTH + "..."
        assert len(err.source) == MAX_SOURCE_LENGTH
        assert err.details.text.endswith("...")
        assert len(err.errors) == MAX_FIELD_ERRORS


class TestAPIErrorBodyRendering:
    def test_code_and_message(self):
        err = APIErrorBody(code="not_found", message="Resource not found")
        assert str(err) == "not_found: Resource not found"

    def test_source(self):
        err = APIErrorBody(code="validation_error", message="Invalid", source="email")
        assert "source: email" in str(err)

    def test_field_error_lines(self):
        err = APIErrorBody(
            code="validation_failed",
            message="The request failed our schema validation.",
            errors=[
                FieldError(
                    source="beneficiary.bank_details.swift_code",
                    code="field_required",
                    message="This field is required",
                ),
                FieldError(
                    source="transfer_method",
                    code="invalid_enum",
                    params={"value_options": ["LOCAL", "SWIFT"]},
                ),
                FieldError(source="amount", code="field_invalid"),
            ],
        )
        rendered = str(err)
        assert "Field errors:" in rendered
        assert "beneficiary.bank_details.swift_code: This field is required" in rendered
        assert "transfer_method: must be one of: ['LOCAL', 'SWIFT']" in rendered
        assert "amount: error code field_invalid" in rendered


class TestExceptions:
    def test_contextual_message(self):
        inner = APIErrorBody(code="not_found", message="Transfer not found")
        err = api_error_for_status("GET", "/api/v1/transfers/123", 404, inner)
        assert str(err) == (
            "GET /api/v1/transfers/123 failed (status 404): "
            "not_found: Transfer not found"
        )
        assert err.error is inner

    @pytest.mark.parametrize(
        "status,cls",
        [
            (400, ClientError),
            (404, ClientError),
            (401, UnauthorizedError),
            (403, UnauthorizedError),
            (429, RateLimitError),
            (500, ServerError),
            (503, ServerError),
        ],
    )
    def test_status_mapping(self, status, cls):
        err = api_error_for_status("POST", "/x", status)
        assert type(err) is cls
        assert isinstance(err, APIError)
        assert isinstance(err, AwxClientError)
        assert err.status_code == status
        assert err.error.code == "unknown_error"

    def test_rate_limit_carries_retry_after(self):
        err = api_error_for_status("GET", "/x", 429, retry_after=30.0)
        assert err.retry_after == 30.0
        assert err.to_dict()["details"]["retry_after"] == 30.0

    def test_to_json(self):
        err = api_error_for_status("GET", "/api/v1/x", 400, APIErrorBody(code="bad"))
        data = json.loads(err.to_json())
        assert data["error"] == "CLIENT_ERROR"
        assert data["details"]["api_code"] == "bad"
        assert data["details"]["path"] == "/api/v1/x"

    def test_helpers(self):
        assert is_auth_error(AuthenticationError("nope"))
        assert is_auth_error(api_error_for_status("GET", "/x", 401))
        assert not is_auth_error(api_error_for_status("GET", "/x", 400))
        assert is_rate_limit_error(api_error_for_status("GET", "/x", 429))
        assert is_circuit_open_error(CircuitOpenError())
        assert not is_circuit_open_error(TransportError("down"))

    def test_not_found_detection(self):
        assert is_not_found_error(api_error_for_status("GET", "/x", 404))
        assert is_not_found_error(
            api_error_for_status(
                "GET", "/x", 400, APIErrorBody(code="resource_not_found")
            )
        )
        assert is_not_found_error(
            api_error_for_status(
                "GET", "/x", 400, APIErrorBody(code="x", message="Payer not found")
            )
        )
        assert is_not_found_error(ValueError("thing not found"))
        assert not is_not_found_error(api_error_for_status("GET", "/x", 400))
        assert not is_not_found_error(None)

    def test_authentication_error_context(self):
        err = AuthenticationError(
            "bad credentials", method="POST", url="https://h/login", status_code=401
        )
        assert str(err) == "POST https://h/login failed (status 401): bad credentials"
        assert err.code == "AUTHENTICATION_ERROR"
