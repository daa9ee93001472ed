"""Tests for credential format checks and the Airwallex API validator."""

from __future__ import annotations

import json

import httpx
import pytest

from airwallex_cli.auth.validation import (
    BALANCES_PATH,
    LOGIN_PATH,
    AirwallexCredentialValidator,
    validate_account_name,
    validate_api_key,
    validate_client_id,
    validate_format,
)
from airwallex_cli.exceptions import CredentialValidationError


# -------------------------------------------------------------------------
# Format checks
# -------------------------------------------------------------------------


class TestAccountName:
    @pytest.mark.parametrize("name", ["a", "prod", "my-account_2", "A" * 64])
    def test_valid(self, name: str) -> None:
        validate_account_name(name)

    def test_empty(self) -> None:
        with pytest.raises(CredentialValidationError, match="account name cannot be empty"):
            validate_account_name("")

    def test_too_long(self) -> None:
        with pytest.raises(CredentialValidationError, match=r"too long \(max 64 characters\)"):
            validate_account_name("a" * 65)

    @pytest.mark.parametrize("name", ["has space", "dot.name", "slash/name", "ünïcode", " prod"])
    def test_invalid_characters(self, name: str) -> None:
        with pytest.raises(CredentialValidationError, match="invalid characters"):
            validate_account_name(name)


class TestClientIdAndApiKey:
    def test_client_id_limits(self) -> None:
        validate_client_id("c" * 128)
        with pytest.raises(CredentialValidationError, match="client ID cannot be empty"):
            validate_client_id("")
        with pytest.raises(CredentialValidationError, match=r"max 128 characters"):
            validate_client_id("c" * 129)

    def test_api_key_limits(self) -> None:
        validate_api_key("k" * 256)
        with pytest.raises(CredentialValidationError, match="API key cannot be empty"):
            validate_api_key("")
        with pytest.raises(CredentialValidationError, match=r"max 256 characters"):
            validate_api_key("k" * 257)

    def test_format_reports_first_failure(self) -> None:
        with pytest.raises(CredentialValidationError, match="account name cannot be empty"):
            validate_format("", "", "")
        with pytest.raises(CredentialValidationError, match="client ID cannot be empty"):
            validate_format("prod", "", "")


# -------------------------------------------------------------------------
# Live validator (stubbed with httpx.MockTransport)
# -------------------------------------------------------------------------


def _api(handler) -> AirwallexCredentialValidator:  # noqa: ANN001
    return AirwallexCredentialValidator(
        base_url="https://api.example.test/",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


class TestAirwallexCredentialValidator:
    def test_success_sends_expected_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == LOGIN_PATH:
                return httpx.Response(201, json={"token": "tok_123"})
            return httpx.Response(200, json=[])

        _api(handler).validate("prod", "cid", "key", "acct_1")

        login, balances = seen
        assert login.method == "POST"
        assert str(login.url) == f"https://api.example.test{LOGIN_PATH}"
        assert login.headers["x-client-id"] == "cid"
        assert login.headers["x-api-key"] == "key"
        assert login.headers["x-login-as"] == "acct_1"
        assert balances.method == "GET"
        assert balances.url.path == BALANCES_PATH
        assert balances.headers["authorization"] == "Bearer tok_123"
        assert balances.headers["x-login-as"] == "acct_1"

    def test_no_login_as_without_account_id(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == LOGIN_PATH:
                return httpx.Response(200, json={"token": "tok"})
            return httpx.Response(200, json={})

        _api(handler).validate("prod", "cid", "key")
        assert all("x-login-as" not in r.headers for r in seen)

    def test_missing_fields(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with pytest.raises(CredentialValidationError, match="are required"):
            _api(handler).validate("prod", "", "key")

    def test_login_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                401, json={"code": "credentials_invalid", "message": "Bad key"}
            )

        with pytest.raises(CredentialValidationError) as exc_info:
            _api(handler).validate("prod", "cid", "bad")
        message = str(exc_info.value)
        assert message.startswith("connection failed: authentication failed")
        assert "credentials_invalid: Bad key (HTTP 401)" in message

    def test_login_without_token(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"expires_at": "soon"})

        with pytest.raises(CredentialValidationError, match="missing token"):
            _api(handler).validate("prod", "cid", "key")

    def test_balances_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == LOGIN_PATH:
                return httpx.Response(200, json={"token": "tok"})
            return httpx.Response(403, text="forbidden")

        with pytest.raises(CredentialValidationError, match=r"connection failed: HTTP 403"):
            _api(handler).validate("prod", "cid", "key")

    def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(CredentialValidationError, match="connection failed: connection refused"):
            _api(handler).validate("prod", "cid", "key")

    def test_login_body_is_not_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, content=b"<html>oops</html>")

        with pytest.raises(CredentialValidationError, match=r"HTTP 500"):
            _api(handler).validate("prod", "cid", "key")

    def test_login_sends_no_body(self) -> None:
        bodies: list[bytes] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(request.content)
            if request.url.path == LOGIN_PATH:
                return httpx.Response(200, content=json.dumps({"token": "t"}).encode())
            return httpx.Response(200, json={})

        _api(handler).validate("prod", "cid", "key")
        assert bodies[0] == b""
