"""Credential setup and storage for airwallex_cli.

This package implements ``airwallex auth login``: a short-lived local HTTP
server that collects API credentials in the user's browser, checks them
against the Airwallex API, and stores them.

The main entry points are:

- :class:`SetupServer` -- runs one browser setup flow and returns a
  :class:`~airwallex_cli.models.SetupResult`.
- :class:`SecretStore` / :class:`FileSecretStore` -- durable per-account
  credential storage.
- :class:`CredentialValidator` / :class:`AirwallexCredentialValidator` --
  live credential checks.
- :class:`RateLimiter` and :class:`CSRFGuard` -- the request defences used
  by the setup server.

Typical usage::

    from airwallex_cli.auth import FileSecretStore, SetupServer

    result = SetupServer(FileSecretStore()).start(timeout=600)
    print(result.account_name)
"""

from airwallex_cli.auth.browser import BrowserLauncher, WebBrowserLauncher
from airwallex_cli.auth.credential_store import FileSecretStore, SecretStore
from airwallex_cli.auth.csrf import CSRFGuard
from airwallex_cli.auth.rate_limit import RateLimiter
from airwallex_cli.auth.server import SetupServer
from airwallex_cli.auth.validation import (
    AirwallexCredentialValidator,
    CredentialValidator,
    validate_account_name,
    validate_api_key,
    validate_client_id,
)

__all__ = [
    "AirwallexCredentialValidator",
    "BrowserLauncher",
    "CSRFGuard",
    "CredentialValidator",
    "FileSecretStore",
    "RateLimiter",
    "SecretStore",
    "SetupServer",
    "WebBrowserLauncher",
    "validate_account_name",
    "validate_api_key",
    "validate_client_id",
]
