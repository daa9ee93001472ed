"""Opening the user's browser for the setup flow.

Launching is best-effort: the setup server logs a failure and tells the user
to open the URL manually instead of aborting.
"""

from __future__ import annotations

import webbrowser
from abc import ABC, abstractmethod

from airwallex_cli.exceptions import BrowserError


class BrowserLauncher(ABC):
    """Opens a URL in the user's browser."""

    @abstractmethod
    def open(self, url: str) -> None:
        """Open *url*; raise :class:`~airwallex_cli.exceptions.BrowserError` on failure."""


class WebBrowserLauncher(BrowserLauncher):
    """Launch the platform default browser via :mod:`webbrowser`."""

    def open(self, url: str) -> None:
        try:
            opened = webbrowser.open(url, new=2)
        except webbrowser.Error as exc:
            raise BrowserError(f"failed to open browser: {exc}") from exc
        if not opened:
            raise BrowserError("no runnable browser found")
