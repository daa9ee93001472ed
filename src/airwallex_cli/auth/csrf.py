"""Per-server CSRF token.

One token is generated when the setup server is constructed and embedded in
the pages it renders. Every mutating request must echo it back in the
``X-CSRF-Token`` header.
"""

from __future__ import annotations

import hmac
import secrets

from airwallex_cli.exceptions import ForbiddenError

CSRF_HEADER = "X-CSRF-Token"
TOKEN_BYTES = 32


class CSRFGuard:
    """Holds an immutable random token and checks supplied copies against it.

    The token is 32 random bytes rendered as 64 lowercase hex characters.
    Comparison goes through :func:`hmac.compare_digest`, so the time taken
    does not depend on how much of a guess is correct.
    """

    def __init__(self) -> None:
        self._token = secrets.token_hex(TOKEN_BYTES)

    @property
    def token(self) -> str:
        return self._token

    def is_valid(self, supplied: str | None) -> bool:
        """Return True when *supplied* matches the token. ``None`` and ``""`` never match."""
        candidate = (supplied or "").encode("utf-8")
        return hmac.compare_digest(candidate, self._token.encode("ascii"))

    def validate(self, supplied: str | None) -> None:
        """Raise :class:`~airwallex_cli.exceptions.ForbiddenError` unless *supplied* matches."""
        if not self.is_valid(supplied):
            raise ForbiddenError("Invalid CSRF token")
