"""Tests for bearer token lifecycle management."""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from awx_client.auth.token_manager import TokenManager
from awx_client.exceptions import AuthenticationError
from awx_client.models import Token, parse_expiry

BASE_URL = "https://api.test.airwallex.com"
NOW = datetime(2025, 12, 17, 8, 0, 0, tzinfo=timezone.utc)


class LoginServer:
    """Login endpoint double that counts round-trips."""

    def __init__(self, status=201, payload=None, delay=0.0):
        self.status = status
        self.payload = payload or {
            "token": "tok-1",
            "expires_at": "2025-12-17T09:00:00Z",
        }
        self.delay = delay
        self.requests = []

    async def handler(self, request):
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        return httpx.Response(self.status, json=self.payload)


def make_manager(server, account_id=None, clock=lambda: NOW):
    client = httpx.AsyncClient(transport=httpx.MockTransport(server.handler))
    return TokenManager(
        client,
        BASE_URL,
        "client-123",
        "key-456",
        account_id=account_id,
        refresh_buffer=60,
        clock=clock,
    )


class TestParseExpiry:
    @pytest.mark.parametrize(
        "value",
        [
            "2025-12-17T08:25:19Z",
            "2025-12-17T08:25:19+00:00",
            "2025-12-17T08:25:19+0000",
            "2025-12-17T08:25:19.123Z",
            "2025-12-17T08:25:19.123456789Z",
            "2025-12-17T08:25:19.123456789+0000",
        ],
    )
    def test_accepted_formats(self, value):
        parsed = parse_expiry(value)
        assert parsed.tzinfo is not None
        assert parsed.replace(microsecond=0) == datetime(
            2025, 12, 17, 8, 25, 19, tzinfo=timezone.utc
        )

    def test_nanosecond_fraction_truncated_to_microseconds(self):
        parsed = parse_expiry("2025-12-17T08:25:19.123456789Z")
        assert parsed.microsecond == 123456

    def test_offsets_are_respected(self):
        parsed = parse_expiry("2025-12-17T10:25:19+0200")
        assert parsed == datetime(2025, 12, 17, 8, 25, 19, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["", "tomorrow", "2025-12-17", "17/12/2025"])
    def test_rejected_formats(self, value):
        with pytest.raises(ValueError):
            parse_expiry(value)


class TestTokenValidity:
    def test_valid_outside_buffer(self):
        token = Token(value="t", expires_at=NOW + timedelta(seconds=61))
        assert token.is_valid(timedelta(seconds=60), now=NOW)

    def test_invalid_inside_buffer(self):
        token = Token(value="t", expires_at=NOW + timedelta(seconds=60))
        assert not token.is_valid(timedelta(seconds=60), now=NOW)

    def test_token_is_immutable(self):
        token = Token(value="t", expires_at=NOW)
        with pytest.raises(Exception):
            token.value = "other"


class TestTokenManager:
    @pytest.mark.asyncio
    async def test_login_headers(self):
        server = LoginServer()
        manager = make_manager(server, account_id="acct-789")

        token = await manager.ensure_valid_token()

        assert token.value == "tok-1"
        request = server.requests[0]
        assert request.method == "POST"
        assert str(request.url) == BASE_URL + "/api/v1/authentication/login"
        assert request.headers["x-client-id"] == "client-123"
        assert request.headers["x-api-key"] == "key-456"
        assert request.headers["x-login-as"] == "acct-789"
        assert request.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_no_login_as_without_account(self):
        server = LoginServer()
        manager = make_manager(server)
        await manager.ensure_valid_token()
        assert "x-login-as" not in server.requests[0].headers

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [200, 201])
    async def test_accepts_200_and_201(self, status):
        manager = make_manager(LoginServer(status=status))
        token = await manager.ensure_valid_token()
        assert token.value == "tok-1"

    @pytest.mark.asyncio
    async def test_nanosecond_expiry_installs_token(self):
        server = LoginServer(
            payload={"token": "tok-ns", "expires_at": "2025-12-17T09:00:00.123456789Z"}
        )
        manager = make_manager(server)

        token = await manager.ensure_valid_token()

        assert manager.token is token
        assert token.expires_at == datetime(
            2025, 12, 17, 9, 0, 0, 123456, tzinfo=timezone.utc
        )

    @pytest.mark.asyncio
    async def test_cached_token_reused(self):
        server = LoginServer()
        manager = make_manager(server)

        first = await manager.ensure_valid_token()
        second = await manager.ensure_valid_token()

        assert first is second
        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_refresh_when_inside_buffer(self):
        server = LoginServer()
        now = {"value": NOW}
        manager = make_manager(server, clock=lambda: now["value"])

        await manager.ensure_valid_token()
        # Token expires at 09:00; 08:59:30 is inside the 60s buffer
        now["value"] = datetime(2025, 12, 17, 8, 59, 30, tzinfo=timezone.utc)
        server.payload = {"token": "tok-2", "expires_at": "2025-12-17T10:00:00Z"}
        token = await manager.ensure_valid_token()

        assert token.value == "tok-2"
        assert len(server.requests) == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_login(self):
        server = LoginServer(delay=0.05)
        manager = make_manager(server)

        tokens = await asyncio.gather(
            *(manager.ensure_valid_token() for _ in range(25))
        )

        assert len(server.requests) == 1
        assert {t.value for t in tokens} == {"tok-1"}

    @pytest.mark.asyncio
    async def test_invalidate_forces_login(self):
        server = LoginServer()
        manager = make_manager(server)
        await manager.ensure_valid_token()

        manager.invalidate()
        assert manager.token is None
        await manager.ensure_valid_token()

        assert len(server.requests) == 2

    @pytest.mark.asyncio
    async def test_non_success_status(self):
        server = LoginServer(
            status=401,
            payload={"code": "credentials_invalid", "message": "Invalid API key"},
        )
        manager = make_manager(server)

        with pytest.raises(AuthenticationError) as exc_info:
            await manager.ensure_valid_token()

        err = exc_info.value
        assert err.status_code == 401
        assert err.method == "POST"
        assert err.url == BASE_URL + "/api/v1/authentication/login"
        assert "POST" in str(err) and "status 401" in str(err)
        assert "credentials_invalid" in str(err)
        assert manager.token is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"expires_at": "2025-12-17T09:00:00Z"},
            {"token": "tok", "expires_at": "not-a-date"},
            {"token": "tok"},
        ],
    )
    async def test_unusable_login_body(self, payload):
        manager = make_manager(LoginServer(payload=payload))
        with pytest.raises(AuthenticationError, match="invalid login response"):
            await manager.ensure_valid_token()

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        async def handler(request):
            return httpx.Response(201, content=b"<html>oops</html>")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        manager = TokenManager(client, BASE_URL, "id", "key", clock=lambda: NOW)

        with pytest.raises(AuthenticationError):
            await manager.ensure_valid_token()

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        manager = TokenManager(client, BASE_URL, "id", "key", clock=lambda: NOW)

        with pytest.raises(AuthenticationError) as exc_info:
            await manager.ensure_valid_token()
        assert isinstance(exc_info.value.__cause__, httpx.ConnectTimeout)

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_token(self):
        server = LoginServer()
        now = {"value": NOW}
        manager = make_manager(server, clock=lambda: now["value"])
        original = await manager.ensure_valid_token()

        now["value"] = datetime(2025, 12, 17, 8, 59, 30, tzinfo=timezone.utc)
        server.status = 500
        with pytest.raises(AuthenticationError):
            await manager.ensure_valid_token()

        assert manager.token is original
