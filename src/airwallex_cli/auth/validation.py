"""Credential format checks and live validation against the Airwallex API.

Two layers:

1. **Format checks** -- :func:`validate_account_name`,
   :func:`validate_client_id`, and :func:`validate_api_key` inspect the
   strings exactly as given. Callers trim whitespace once, before calling
   them; the checks themselves never trim.
2. **Live checks** -- a :class:`CredentialValidator` confirms the
   credentials actually work. :class:`AirwallexCredentialValidator`
   exchanges them for an access token and reads the current balances.

See Also:
    :class:`airwallex_cli.auth.server.SetupServer` -- runs both layers on
    every ``/validate`` and ``/submit`` request.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from airwallex_cli.exceptions import CredentialValidationError
from airwallex_cli.models import DEFAULT_API_BASE_URL

MAX_ACCOUNT_NAME_LENGTH = 64
MAX_CLIENT_ID_LENGTH = 128
MAX_API_KEY_LENGTH = 256

_ACCOUNT_NAME_RE = re.compile(r"[A-Za-z0-9_-]+")

LOGIN_PATH = "/api/v1/authentication/login"
BALANCES_PATH = "/api/v1/balances/current"


def validate_account_name(name: str) -> None:
    """Check that *name* is 1-64 characters of letters, digits, ``-`` or ``_``.

    Raises:
        CredentialValidationError: With a message describing the first
            problem found.
    """
    if not name:
        raise CredentialValidationError("account name cannot be empty")
    if len(name) > MAX_ACCOUNT_NAME_LENGTH:
        raise CredentialValidationError(
            f"account name too long (max {MAX_ACCOUNT_NAME_LENGTH} characters)"
        )
    if not _ACCOUNT_NAME_RE.fullmatch(name):
        raise CredentialValidationError(
            "account name contains invalid characters "
            "(use only letters, numbers, dash, underscore)"
        )


def validate_client_id(client_id: str) -> None:
    """Check that *client_id* is 1-128 characters."""
    if not client_id:
        raise CredentialValidationError("client ID cannot be empty")
    if len(client_id) > MAX_CLIENT_ID_LENGTH:
        raise CredentialValidationError(
            f"client ID too long (max {MAX_CLIENT_ID_LENGTH} characters)"
        )


def validate_api_key(api_key: str) -> None:
    """Check that *api_key* is 1-256 characters."""
    if not api_key:
        raise CredentialValidationError("API key cannot be empty")
    if len(api_key) > MAX_API_KEY_LENGTH:
        raise CredentialValidationError(
            f"API key too long (max {MAX_API_KEY_LENGTH} characters)"
        )


def validate_format(account_name: str, client_id: str, api_key: str) -> None:
    """Run the three format checks in order, stopping at the first failure."""
    validate_account_name(account_name)
    validate_client_id(client_id)
    validate_api_key(api_key)


class CredentialValidator(ABC):
    """Confirms that a set of credentials is accepted by the remote service."""

    @abstractmethod
    def validate(
        self,
        account_name: str,
        client_id: str,
        api_key: str,
        account_id: str = "",
    ) -> None:
        """Raise :class:`~airwallex_cli.exceptions.CredentialValidationError` if rejected."""


class AirwallexCredentialValidator(CredentialValidator):
    """Validate credentials by logging in and fetching current balances.

    Args:
        base_url: API base URL (no trailing slash).
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, used by tests to stub the API.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def validate(
        self,
        account_name: str,
        client_id: str,
        api_key: str,
        account_id: str = "",
    ) -> None:
        if not account_name or not client_id or not api_key:
            raise CredentialValidationError(
                "account name, Client ID, and API Key are required"
            )

        login_headers = {
            "Content-Type": "application/json",
            "x-client-id": client_id,
            "x-api-key": api_key,
        }
        if account_id:
            login_headers["x-login-as"] = account_id

        try:
            with httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                login = client.post(LOGIN_PATH, headers=login_headers)
                if login.status_code not in (200, 201):
                    raise CredentialValidationError(
                        f"connection failed: authentication failed: {_api_error_message(login)}"
                    )
                token = _json_body(login).get("token")
                if not token:
                    raise CredentialValidationError(
                        "connection failed: authentication response missing token"
                    )

                headers = {"Authorization": f"Bearer {token}"}
                if account_id:
                    headers["x-login-as"] = account_id
                response = client.get(BALANCES_PATH, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise CredentialValidationError(
                f"connection failed: {_api_error_message(exc.response)}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CredentialValidationError(f"connection failed: {exc}") from exc


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _api_error_message(response: httpx.Response) -> str:
    """Extract a readable message from an Airwallex error response."""
    data = _json_body(response)
    message = data.get("message")
    code = data.get("code")
    if message and code:
        return f"{code}: {message} (HTTP {response.status_code})"
    if message:
        return f"{message} (HTTP {response.status_code})"
    return f"HTTP {response.status_code}"
