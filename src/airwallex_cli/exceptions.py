"""Exception hierarchy for airwallex_cli.

All exceptions inherit from :class:`AirwallexError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`airwallex_cli.exit_codes`. The top-level error handler in
:func:`airwallex_cli.app.main` catches ``AirwallexError`` and exits with the
appropriate code, while unexpected exceptions produce a crash log and exit
with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    AirwallexError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- ConfigError                (exit 1)
    +-- StoreError                 (exit 1)
    +-- BrowserError               (exit 1)
    +-- ConnectionError_           (exit 6)
    +-- MalformedRequestError      (exit 1)
    +-- AuthError                  (exit 3)
    |   +-- ForbiddenError
    |   +-- RateLimitExceededError
    |   +-- CredentialValidationError
    +-- SetupError                 (exit 3)
        +-- SetupCancelledError
        +-- SetupTimeoutError
        +-- SetupInterruptedError  (exit 130)

The request-level errors (:class:`ForbiddenError`,
:class:`RateLimitExceededError`, :class:`CredentialValidationError`) are
raised inside the local setup server and turned into HTTP responses there;
they only reach the CLI from commands such as ``auth add`` and ``auth test``.
"""

from airwallex_cli.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_INVALID_USAGE,
)


class AirwallexError(Exception):
    """Base exception for all airwallex_cli errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`airwallex_cli.exit_codes`. The entry point
    catches this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(AirwallexError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(AirwallexError):
    """Raised for configuration problems (invalid JSON, bad settings)."""

    exit_code = EXIT_GENERIC_FAILURE


class StoreError(AirwallexError):
    """Raised when the secret store cannot read, write, or find credentials."""

    exit_code = EXIT_GENERIC_FAILURE


class BrowserError(AirwallexError):
    """Raised when the system browser cannot be opened."""

    exit_code = EXIT_GENERIC_FAILURE


class ConnectionError_(AirwallexError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class MalformedRequestError(AirwallexError):
    """Raised when a request body sent to the setup server cannot be decoded."""

    exit_code = EXIT_GENERIC_FAILURE


class AuthError(AirwallexError):
    """Raised when authentication fails (e.g. rejected API key)."""

    exit_code = EXIT_AUTH_FAILURE


class ForbiddenError(AuthError):
    """Raised when a request carries a missing or wrong CSRF token."""


class RateLimitExceededError(AuthError):
    """Raised when a client exceeds its attempt budget for an endpoint."""


class CredentialValidationError(AuthError):
    """Raised when submitted credentials are malformed or rejected by the API."""


class SetupError(AirwallexError):
    """Raised when the browser setup flow cannot run (e.g. the port cannot be bound)."""

    exit_code = EXIT_AUTH_FAILURE


class SetupCancelledError(SetupError):
    """Raised when the browser flow finishes without delivering credentials."""


class SetupTimeoutError(SetupError):
    """Raised when the caller's deadline passes before the flow completes."""


class SetupInterruptedError(SetupError):
    """Raised when the caller cancels the flow (Ctrl-C, SIGTERM, cancel event)."""

    exit_code = EXIT_INTERRUPTED
