"""Auth commands -- set up and manage stored account credentials.

Provides the ``airwallex auth`` sub-command group. ``login`` runs the
browser-based setup flow; the remaining commands work directly on the
local secret store.

Typical workflow::

    airwallex auth login             # guided browser setup
    airwallex auth list              # show configured accounts
    airwallex auth test production   # verify stored credentials
"""

from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

import typer

from airwallex_cli.exceptions import AirwallexError, InvalidUsageError, StoreError
from airwallex_cli.output import error, get_output, info, print_json, success, suggest


auth_app = typer.Typer(no_args_is_help=True)


def _open_store():  # noqa: ANN202
    """Return the default secret store."""
    from airwallex_cli.auth.credential_store import FileSecretStore

    return FileSecretStore()


def _fail(exc: AirwallexError) -> typer.Exit:
    """Report *exc* on stderr and build the matching ``typer.Exit``."""
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


@contextmanager
def _cancel_on_signals(cancel: threading.Event) -> Iterator[None]:
    """Set *cancel* on SIGINT/SIGTERM for the duration of the block.

    Signal handlers can only be installed from the main thread; elsewhere
    this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: object) -> None:
        cancel.set()

    previous = {
        sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


@auth_app.command("login")
def auth_login(
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Seconds to wait for the browser flow (default: 600)."
    ),
) -> None:
    """Authenticate via browser.

    Starts a local setup page, opens it in the default browser, and waits
    until credentials have been tested and saved there. Ctrl-C abandons
    the flow.

    Example::

        airwallex auth login
    """
    from airwallex_cli.auth.server import SetupServer
    from airwallex_cli.config import load_setup_settings

    try:
        settings = load_setup_settings()
        server = SetupServer(_open_store(), settings=settings)
    except AirwallexError as exc:
        raise _fail(exc) from None

    info("Opening browser for authentication setup...")
    info("Complete the setup in your browser, then return here.")

    cancel = threading.Event()
    try:
        with _cancel_on_signals(cancel):
            result = server.start(
                cancel=cancel,
                timeout=timeout if timeout is not None else settings.login_timeout_seconds,
                on_listening=lambda url: info(f"If the browser does not open, visit: {url}"),
            )
    except AirwallexError as exc:
        error(f"setup failed: {exc}")
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Account '{result.account_name}' configured successfully!")
    suggest(f"Test it: airwallex auth test {result.account_name}")


@auth_app.command("add")
def auth_add(
    name: str = typer.Argument(help="Account name."),
    client_id: str = typer.Option(..., "--client-id", help="Airwallex Client ID."),
    api_key: Optional[str] = typer.Option(
        None, "--api-key", help="Airwallex API Key (omit to prompt)."
    ),
    account_id: str = typer.Option(
        "", "--account-id", help="Account ID sent as x-login-as (multi-account API keys)."
    ),
) -> None:
    """Add account credentials without the browser.

    Example::

        airwallex auth add production --client-id xxx
        airwallex auth add production --client-id xxx --account-id acct_xxx
    """
    from airwallex_cli.auth.validation import (
        validate_account_name,
        validate_api_key,
        validate_client_id,
    )
    from airwallex_cli.models import Credentials

    name = name.strip()
    client_id = client_id.strip()
    try:
        validate_account_name(name)
    except AirwallexError as exc:
        raise _fail(InvalidUsageError(f"invalid account name: {exc}")) from None
    try:
        validate_client_id(client_id)
    except AirwallexError as exc:
        raise _fail(InvalidUsageError(f"invalid client ID: {exc}")) from None

    if api_key is None:
        api_key = typer.prompt("API Key", hide_input=True, err=True)
    api_key = api_key.strip()
    try:
        validate_api_key(api_key)
    except AirwallexError as exc:
        raise _fail(InvalidUsageError(f"invalid API key: {exc}")) from None

    try:
        _open_store().set(
            name,
            Credentials(
                name=name,
                client_id=client_id,
                api_key=api_key,
                account_id=account_id.strip(),
            ),
        )
    except StoreError as exc:
        raise _fail(StoreError(f"failed to store credentials: {exc}")) from None

    success(f"Added account: {name}")


@auth_app.command("list")
def auth_list() -> None:
    """List configured accounts.

    Example::

        airwallex auth list
        airwallex --json auth list
    """
    try:
        accounts = _open_store().list()
    except StoreError as exc:
        raise _fail(StoreError(f"failed to list accounts: {exc}")) from None

    output = get_output()
    if output.is_json:
        print_json({"accounts": [c.public_dump() for c in accounts]})
        return

    if not accounts:
        info("No accounts configured.")
        suggest("Add one: airwallex auth login")
        return

    rows = [
        [
            c.name,
            c.client_id,
            c.created_at.strftime("%Y-%m-%d") if c.created_at else "-",
        ]
        for c in accounts
    ]
    output.print_table(["NAME", "CLIENT_ID", "CREATED"], rows, title="Accounts")


@auth_app.command("remove")
def auth_remove(
    ctx: typer.Context,
    name: str = typer.Argument(help="Account name to remove."),
) -> None:
    """Remove account credentials.

    Asks for confirmation unless ``--force`` is active.

    Example::

        airwallex auth remove sandbox
    """
    store = _open_store()
    if not store.exists(name):
        raise _fail(StoreError(f"account not found: {name}"))

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm(f'Remove credentials for "{name}"?')
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    try:
        store.delete(name)
    except StoreError as exc:
        raise _fail(StoreError(f"failed to remove account: {exc}")) from None
    success(f"Removed account: {name}")


@auth_app.command("rename")
def auth_rename(
    old_name: str = typer.Argument(help="Current account name."),
    new_name: str = typer.Argument(help="New account name."),
) -> None:
    """Rename an account, keeping its credentials and creation date.

    Example::

        airwallex auth rename production prod
    """
    from airwallex_cli.auth.validation import validate_account_name

    old_name = old_name.strip()
    new_name = new_name.strip()
    try:
        validate_account_name(new_name)
    except AirwallexError as exc:
        raise _fail(InvalidUsageError(f"invalid new account name: {exc}")) from None

    store = _open_store()
    try:
        creds = store.get(old_name)
    except StoreError:
        raise _fail(StoreError(f"account not found: {old_name}")) from None

    if store.exists(new_name):
        raise _fail(StoreError(f"account already exists: {new_name}"))

    try:
        store.set(new_name, creds.model_copy(update={"name": new_name}))
    except StoreError as exc:
        raise _fail(StoreError(f"failed to create new account: {exc}")) from None

    try:
        store.delete(old_name)
    except StoreError as exc:
        message = f"failed to remove old account: {exc}"
        try:
            store.delete(new_name)
        except StoreError as rollback_exc:
            message += f"; rollback of '{new_name}' also failed: {rollback_exc}"
        raise _fail(StoreError(message)) from None

    success(f"Renamed account: {old_name} → {new_name}")


@auth_app.command("test")
def auth_test(
    name: str = typer.Argument(help="Account name to test."),
) -> None:
    """Test stored credentials against the Airwallex API.

    Example::

        airwallex auth test production
    """
    from airwallex_cli.auth.validation import AirwallexCredentialValidator
    from airwallex_cli.config import load_setup_settings

    try:
        creds = _open_store().get(name)
        settings = load_setup_settings()
    except AirwallexError as exc:
        raise _fail(exc) from None

    info(f"Testing account: {creds.name} (client_id: {creds.client_id})")
    validator = AirwallexCredentialValidator(
        base_url=settings.api_base_url,
        timeout=settings.request_timeout_seconds,
    )
    try:
        validator.validate(creds.name, creds.client_id, creds.api_key, creds.account_id)
    except AirwallexError as exc:
        error(f"Authentication failed: {exc}")
        raise typer.Exit(code=exc.exit_code) from None

    success("Credentials valid")
