"""Canonical Pydantic models shared across all airwallex_cli modules.

The models fall into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`SetupSettings` and :class:`GlobalConfig`.

**Credential models** -- persisted by the secret store:
    :class:`Credentials`.

**Setup flow models** -- exchanged with the browser during ``auth login``:
    :class:`SetupRequest` (the JSON body of ``/validate`` and ``/submit``)
    and :class:`SetupResult` (what the flow hands back to the caller).

All models use Pydantic v2.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_API_BASE_URL = "https://api.airwallex.com"


# --- Configuration ---


class SetupSettings(BaseModel):
    """Tunables for the browser-based setup server and credential checks.

    Example::

        SetupSettings(rate_limit_max_attempts=5, login_timeout_seconds=120)
    """

    rate_limit_max_attempts: int = Field(
        default=10, ge=1, description="Attempts allowed per client and endpoint per window"
    )
    rate_limit_window_seconds: float = Field(
        default=15 * 60, gt=0, description="Fixed rate-limit window length"
    )
    cleanup_interval_seconds: float = Field(
        default=5 * 60, gt=0, description="How often expired rate-limit entries are swept"
    )
    request_timeout_seconds: float = Field(
        default=30, gt=0, description="Per-request socket and API timeout"
    )
    login_timeout_seconds: float = Field(
        default=10 * 60, gt=0, description="Overall deadline for `auth login`"
    )
    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL, description="Airwallex API base URL"
    )


class GlobalConfig(BaseModel):
    """Top-level ``config.json`` contents."""

    default_account: Optional[str] = None
    setup: SetupSettings = Field(default_factory=SetupSettings)


# --- Credentials ---


class Credentials(BaseModel):
    """API credentials for one named Airwallex account.

    ``api_key`` is excluded from :meth:`public_dump` so that listings never
    print the secret.

    Attributes:
        name: Normalised account name (lower-case).
        client_id: Airwallex client ID.
        api_key: Airwallex API key.
        account_id: Optional account ID sent as ``x-login-as`` for
            multi-account keys.
        created_at: When the credentials were first stored (UTC).
    """

    name: str = ""
    client_id: str
    api_key: str
    account_id: str = ""
    created_at: Optional[datetime] = None

    def public_dump(self) -> dict[str, Any]:
        """Return a JSON-safe dict without the API key."""
        return self.model_dump(mode="json", exclude={"api_key"})


# --- Setup flow ---


class SetupRequest(BaseModel):
    """JSON body posted by the setup page to ``/validate`` and ``/submit``.

    Unknown keys are ignored and ``null`` is read as an empty string, so
    only structurally wrong bodies (non-objects, non-string values) fail to
    decode.
    """

    account_name: str = ""
    client_id: str = ""
    api_key: str = ""
    account_id: str = ""

    @field_validator("account_name", "client_id", "api_key", "account_id", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def normalized(self) -> SetupRequest:
        """Return a copy with surrounding whitespace trimmed from every field."""
        return SetupRequest(
            account_name=self.account_name.strip(),
            client_id=self.client_id.strip(),
            api_key=self.api_key.strip(),
            account_id=self.account_id.strip(),
        )


class SetupResult(BaseModel):
    """Outcome of one browser setup flow.

    Produced once per successful flow and handed back by
    :meth:`~airwallex_cli.auth.server.SetupServer.start`. ``error`` is kept
    so callers can treat results uniformly; the setup server itself reports
    failures by raising.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    account_name: str
    client_id: str
    account_id: str = ""
    error: Optional[Exception] = None
