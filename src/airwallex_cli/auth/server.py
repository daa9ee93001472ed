"""Local browser-based credential setup server.

:class:`SetupServer` runs the ``airwallex auth login`` flow:

1. Bind ``127.0.0.1`` on an OS-assigned port and serve five routes from a
   background thread.
2. Open the user's browser on the setup page (best-effort).
3. The page posts the account name, client ID, API key, and optional
   account ID to ``/validate`` (test only) and ``/submit`` (test and save).
4. After a successful submit the browser loads ``/success``, which fires a
   ``/complete`` beacon. That hands the captured result to the caller
   blocked in :meth:`SetupServer.start`.

Every mutating route checks the CSRF token *before* touching the rate
limiter, so forged requests never spend a client's attempt budget.
Domain failures (bad format, rejected credentials, store errors) are
answered with HTTP 200 and ``{"success": false}`` so the page has a single
error path; only CSRF (403), rate limiting (429), and undecodable bodies
(400) use error statuses.

Request handling is implemented by :meth:`SetupServer.handle`, which works
on plain values and returns an :class:`HTTPResponse`. The
:mod:`http.server` handler class is a thin adapter around it.

See Also:
    :class:`~airwallex_cli.auth.rate_limit.RateLimiter`
    :class:`~airwallex_cli.auth.csrf.CSRFGuard`
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Mapping, Optional
from urllib.parse import unquote, urlsplit

from pydantic import ValidationError

from airwallex_cli.auth.browser import BrowserLauncher, WebBrowserLauncher
from airwallex_cli.auth.credential_store import SecretStore
from airwallex_cli.auth.csrf import CSRF_HEADER, CSRFGuard
from airwallex_cli.auth.rate_limit import RateLimiter
from airwallex_cli.auth.templates import render_setup_page, render_success_page
from airwallex_cli.auth.validation import (
    AirwallexCredentialValidator,
    CredentialValidator,
    validate_format,
)
from airwallex_cli.exceptions import (
    CredentialValidationError,
    ForbiddenError,
    MalformedRequestError,
    RateLimitExceededError,
    SetupCancelledError,
    SetupError,
    SetupInterruptedError,
    SetupTimeoutError,
    StoreError,
)
from airwallex_cli.models import Credentials, SetupRequest, SetupResult, SetupSettings

logger = logging.getLogger(__name__)

LISTEN_HOST = "127.0.0.1"
MAX_BODY_BYTES = 64 * 1024
WAIT_POLL_INTERVAL = 0.1

_HTML_HEADERS = {
    "Content-Type": "text/html; charset=utf-8",
    "Content-Security-Policy": (
        "default-src 'self'; script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline'"
    ),
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
}


@dataclass
class HTTPResponse:
    """Status, headers, and body produced for one request."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        return json.loads(self.body)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


@dataclass
class _Request:
    method: str
    path: str
    headers: dict[str, str]
    body: bytes
    client_address: str

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


def _json_response(status: int, data: dict[str, Any]) -> HTTPResponse:
    body = (json.dumps(data) + "\n").encode("utf-8")
    return HTTPResponse(status, body, {"Content-Type": "application/json"})


def _text_response(status: int, message: str) -> HTTPResponse:
    return HTTPResponse(
        status,
        (message + "\n").encode("utf-8"),
        {"Content-Type": "text/plain; charset=utf-8", "X-Content-Type-Options": "nosniff"},
    )


def _html_response(page: str) -> HTTPResponse:
    return HTTPResponse(200, page.encode("utf-8"), dict(_HTML_HEADERS))


def _failure(status: int, message: str) -> HTTPResponse:
    return _json_response(status, {"success": False, "error": message})


def _method_not_allowed() -> HTTPResponse:
    return _text_response(405, "Method not allowed")


class PendingResult:
    """Lock-guarded optional :class:`~airwallex_cli.models.SetupResult`.

    Written by the submit route (last write wins) and read by the success
    and complete routes. Nothing clears it once set.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Optional[SetupResult] = None

    def set(self, result: SetupResult) -> None:
        with self._lock:
            self._value = result

    def get(self) -> Optional[SetupResult]:
        with self._lock:
            return self._value


class ResultSlot:
    """One-shot handoff of a result from a request thread to the waiting caller.

    :meth:`complete` succeeds once; later calls return ``False`` and leave
    the stored value untouched.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._value: Optional[SetupResult] = None

    def complete(self, result: SetupResult) -> bool:
        with self._lock:
            if self._done.is_set():
                return False
            self._value = result
            self._done.set()
            return True

    def done(self) -> bool:
        return self._done.is_set()

    def result(self) -> Optional[SetupResult]:
        return self._value

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)


class SetupServer:
    """Ephemeral local server that captures API credentials from a browser.

    One instance runs one flow: :meth:`start` may only be called once.

    Args:
        store: Where validated credentials are persisted.
        validator: Live credential check. Defaults to
            :class:`~airwallex_cli.auth.validation.AirwallexCredentialValidator`
            configured from *settings*.
        launcher: Opens the browser. Defaults to
            :class:`~airwallex_cli.auth.browser.WebBrowserLauncher`.
        settings: Rate-limit, timeout, and API settings.
        limiter: Override the rate limiter (tests use a small budget).

    Example::

        server = SetupServer(FileSecretStore())
        result = server.start(timeout=600)
        print(result.account_name)
    """

    def __init__(
        self,
        store: SecretStore,
        validator: Optional[CredentialValidator] = None,
        launcher: Optional[BrowserLauncher] = None,
        settings: Optional[SetupSettings] = None,
        limiter: Optional[RateLimiter] = None,
    ) -> None:
        self.settings = settings or SetupSettings()
        self.store = store
        self.validator = validator or AirwallexCredentialValidator(
            base_url=self.settings.api_base_url,
            timeout=self.settings.request_timeout_seconds,
        )
        self.launcher = launcher or WebBrowserLauncher()
        self.limiter = limiter or RateLimiter(
            self.settings.rate_limit_max_attempts,
            self.settings.rate_limit_window_seconds,
        )

        self._csrf = CSRFGuard()
        self._pending = PendingResult()
        self._result = ResultSlot()
        self._shutdown = threading.Event()
        self._stop_cleanup = threading.Event()
        self._started = False
        self._start_lock = threading.Lock()
        self._base_url: Optional[str] = None

        self._routes: dict[str, Callable[[_Request], HTTPResponse]] = {
            "/": self._handle_setup,
            "/validate": self._handle_validate,
            "/submit": self._handle_submit,
            "/success": self._handle_success,
            "/complete": self._handle_complete,
        }

    @property
    def csrf_token(self) -> str:
        return self._csrf.token

    @property
    def base_url(self) -> Optional[str]:
        """``http://127.0.0.1:<port>`` once :meth:`start` is listening, else ``None``."""
        return self._base_url

    @property
    def pending_result(self) -> Optional[SetupResult]:
        return self._pending.get()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
        on_listening: Optional[Callable[[str], None]] = None,
    ) -> SetupResult:
        """Serve the setup flow and block until it ends.

        Exactly one of these ends the wait:

        * the browser completes the flow with a saved result (returned);
        * *cancel* is set (:class:`SetupInterruptedError`);
        * *timeout* seconds pass (:class:`SetupTimeoutError`);
        * the browser completes the flow without a saved result
          (:class:`SetupCancelledError`).

        The listener and the rate-limit sweep are torn down on every exit.

        Args:
            cancel: Event the caller sets to abandon the flow.
            timeout: Overall deadline in seconds; ``None`` waits forever.
            on_listening: Called with the base URL once the listener is up,
                before the browser is opened.

        Returns:
            The captured :class:`~airwallex_cli.models.SetupResult`.

        Raises:
            SetupError: If the server was already started or the port
                cannot be bound.
        """
        with self._start_lock:
            if self._started:
                raise SetupError("setup server can only be started once")
            self._started = True

        sweep = self.limiter.start_cleanup(
            self.settings.cleanup_interval_seconds, self._stop_cleanup
        )
        try:
            try:
                httpd = _SetupHTTPServer((LISTEN_HOST, 0), self)
            except OSError as exc:
                raise SetupError(f"failed to start server: {exc}") from exc

            port = httpd.server_address[1]
            self._base_url = f"http://{LISTEN_HOST}:{port}"
            serve_thread = threading.Thread(
                target=httpd.serve_forever,
                kwargs={"poll_interval": WAIT_POLL_INTERVAL},
                name="setup-server",
                daemon=True,
            )
            serve_thread.start()
            logger.debug("Setup server listening on %s", self._base_url)

            try:
                if on_listening is not None:
                    on_listening(self._base_url)
                threading.Thread(
                    target=self._open_browser,
                    args=(self._base_url,),
                    name="setup-browser",
                    daemon=True,
                ).start()
                return self._wait(cancel, timeout)
            finally:
                httpd.shutdown()
                httpd.server_close()
                serve_thread.join()
                logger.debug("Setup server stopped")
        finally:
            self._stop_cleanup.set()
            sweep.join()

    def _wait(
        self, cancel: Optional[threading.Event], timeout: Optional[float]
    ) -> SetupResult:
        """Block until a delivered result, cancellation, shutdown or the deadline.

        Only the shutdown event wakes the loop early; *cancel* and the
        deadline are polled, so cancellation is noticed up to
        ``WAIT_POLL_INTERVAL`` seconds late.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            result = self._result.result()
            if result is not None:
                return result
            if cancel is not None and cancel.is_set():
                raise SetupInterruptedError("setup interrupted")
            if self._shutdown.is_set():
                pending = self._pending.get()
                if pending is not None:
                    return pending
                raise SetupCancelledError("setup cancelled")

            interval = WAIT_POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise SetupTimeoutError("setup timed out waiting for the browser")
                interval = min(interval, remaining)
            # /complete sets the shutdown event after delivering, so it doubles as a wake-up.
            self._shutdown.wait(interval)

    def _open_browser(self, url: str) -> None:
        try:
            self.launcher.open(url)
        except Exception as exc:
            logger.info(
                "Failed to open browser (%s), user can navigate manually to %s", exc, url
            )

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def handle(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        body: bytes = b"",
        client_address: str = LISTEN_HOST,
    ) -> HTTPResponse:
        """Route one request and return its response.

        Args:
            method: HTTP method (``"GET"``, ``"POST"``...).
            path: Request target; any query string is ignored for routing.
            headers: Request headers, matched case-insensitively.
            body: Raw request body.
            client_address: Peer host, used as the rate-limit key.
        """
        route = unquote(urlsplit(path).path)
        request = _Request(
            method=method.upper(),
            path=route,
            headers={k.lower(): v for k, v in headers.items()},
            body=body,
            client_address=client_address,
        )
        handler = self._routes.get(route)
        if handler is None:
            return _text_response(404, "404 page not found")
        return handler(request)

    def _handle_setup(self, request: _Request) -> HTTPResponse:
        return _html_response(render_setup_page(self._csrf.token))

    def _handle_validate(self, request: _Request) -> HTTPResponse:
        if request.method != "POST":
            return _method_not_allowed()
        try:
            self._check_credentials(request, "/validate")
        except ForbiddenError:
            return _text_response(403, "Invalid CSRF token")
        except RateLimitExceededError as exc:
            return _failure(429, str(exc))
        except MalformedRequestError as exc:
            return _failure(400, str(exc))
        except CredentialValidationError as exc:
            return _failure(200, str(exc))

        return _json_response(200, {"success": True, "message": "Connection successful!"})

    def _handle_submit(self, request: _Request) -> HTTPResponse:
        if request.method != "POST":
            return _method_not_allowed()
        try:
            payload = self._check_credentials(request, "/submit")
        except ForbiddenError:
            return _text_response(403, "Invalid CSRF token")
        except RateLimitExceededError as exc:
            return _failure(429, str(exc))
        except MalformedRequestError as exc:
            return _failure(400, str(exc))
        except CredentialValidationError as exc:
            return _failure(200, str(exc))

        try:
            self.store.set(
                payload.account_name,
                Credentials(
                    name=payload.account_name,
                    client_id=payload.client_id,
                    api_key=payload.api_key,
                    account_id=payload.account_id,
                ),
            )
        except StoreError as exc:
            logger.error("Failed to save credentials for '%s': %s", payload.account_name, exc)
            return _failure(200, "Failed to save credentials to secure storage")

        self._pending.set(
            SetupResult(
                account_name=payload.account_name,
                client_id=payload.client_id,
                account_id=payload.account_id,
            )
        )
        logger.info("Saved credentials for account '%s'", payload.account_name)
        return _json_response(200, {"success": True, "account_name": payload.account_name})

    def _handle_success(self, request: _Request) -> HTTPResponse:
        # Only server-held state is rendered; query parameters are never read.
        pending = self._pending.get()
        account_name = pending.account_name if pending is not None else ""
        return _html_response(render_success_page(account_name, self._csrf.token))

    def _handle_complete(self, request: _Request) -> HTTPResponse:
        if request.method != "POST":
            return _method_not_allowed()
        if not self._csrf.is_valid(request.header(CSRF_HEADER)):
            return _text_response(403, "Invalid CSRF token")

        pending = self._pending.get()
        if pending is not None and not self._result.complete(pending):
            logger.debug("Setup result already delivered, ignoring repeated /complete")
        self._shutdown.set()
        return _json_response(200, {"success": True})

    def _check_credentials(self, request: _Request, endpoint: str) -> SetupRequest:
        """Run the shared /validate and /submit checks in order.

        CSRF, rate limit, body decoding, format checks, then the live
        validator. Returns the trimmed payload.
        """
        self._csrf.validate(request.header(CSRF_HEADER))
        self.limiter.check(request.client_address, endpoint)

        try:
            payload = SetupRequest.model_validate_json(request.body)
        except ValidationError as exc:
            raise MalformedRequestError("Invalid request body") from exc
        payload = payload.normalized()

        validate_format(payload.account_name, payload.client_id, payload.api_key)
        self.validator.validate(
            payload.account_name, payload.client_id, payload.api_key, payload.account_id
        )
        return payload


class _SetupRequestHandler(BaseHTTPRequestHandler):
    """Adapts :mod:`http.server` requests to :meth:`SetupServer.handle`."""

    server: _SetupHTTPServer
    server_version = "AirwallexSetup"
    sys_version = ""

    def setup(self) -> None:
        self.timeout = self.server.setup_server.settings.request_timeout_seconds
        super().setup()

    def do_GET(self) -> None:
        self._dispatch()

    def do_POST(self) -> None:
        self._dispatch()

    def do_PUT(self) -> None:
        self._dispatch()

    def do_PATCH(self) -> None:
        self._dispatch()

    def do_DELETE(self) -> None:
        self._dispatch()

    def _read_body(self) -> bytes:
        try:
            length = int(self.headers.get("Content-Length", "0"))
        except ValueError:
            length = 0
        if length <= 0:
            return b""
        # Oversized bodies are truncated, which makes them fail JSON decoding.
        return self.rfile.read(min(length, MAX_BODY_BYTES))

    def _dispatch(self) -> None:
        try:
            response = self.server.setup_server.handle(
                self.command,
                self.path,
                dict(self.headers.items()),
                self._read_body(),
                self.client_address[0],
            )
        except Exception:
            logger.exception("Unhandled error serving %s %s", self.command, self.path)
            response = _text_response(500, "Internal error")

        self.send_response(response.status)
        for name, value in response.headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(response.body)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(response.body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class _SetupHTTPServer(ThreadingHTTPServer):
    """Threaded HTTP server bound to one :class:`SetupServer`."""

    daemon_threads = True
    allow_reuse_address = False

    def __init__(self, address: tuple[str, int], setup_server: SetupServer) -> None:
        self.setup_server = setup_server
        super().__init__(address, _SetupRequestHandler)
