"""Tests for the CSRF token guard."""

from __future__ import annotations

import re

import pytest

from airwallex_cli.auth.csrf import CSRFGuard
from airwallex_cli.exceptions import ForbiddenError


class TestCSRFGuard:
    def test_token_is_64_hex_chars(self) -> None:
        assert re.fullmatch(r"[0-9a-f]{64}", CSRFGuard().token)

    def test_tokens_differ_between_guards(self) -> None:
        assert CSRFGuard().token != CSRFGuard().token

    def test_token_is_stable(self) -> None:
        guard = CSRFGuard()
        assert guard.token == guard.token

    def test_matching_token_is_valid(self) -> None:
        guard = CSRFGuard()
        assert guard.is_valid(guard.token)
        guard.validate(guard.token)

    @pytest.mark.parametrize("supplied", [None, "", "deadbeef", "x" * 64])
    def test_wrong_token_rejected(self, supplied: str | None) -> None:
        guard = CSRFGuard()
        assert not guard.is_valid(supplied)
        with pytest.raises(ForbiddenError, match="Invalid CSRF token"):
            guard.validate(supplied)

    def test_prefix_of_token_rejected(self) -> None:
        guard = CSRFGuard()
        assert not guard.is_valid(guard.token[:-1])

    def test_non_ascii_input_rejected(self) -> None:
        assert not CSRFGuard().is_valid("é" * 64)
