"""The ``airwallex`` command: root Typer app and console-script entry point.

Global flags are handled by :func:`main_callback`; the ``auth`` group lives
in :mod:`airwallex_cli.commands.auth`. :func:`main` turns
:class:`~airwallex_cli.exceptions.AirwallexError` into its exit code and
anything unexpected into a crash log under the data directory.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from airwallex_cli import __version__
from airwallex_cli.commands.auth import auth_app
from airwallex_cli.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED

app = typer.Typer(
    name="airwallex",
    help="Command-line access to the Airwallex API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
app.add_typer(auth_app, name="auth", help="Authentication management.")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"airwallex {__version__}")
        raise typer.Exit()


def _pick_format(json_output: bool, plain_output: bool):  # noqa: ANN202
    from airwallex_cli.output import OutputFormat

    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    return OutputFormat.AUTO


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit."
    ),
    json_output: bool = typer.Option(False, "--json", help="Emit results as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Emit results as plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colours."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print results and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug logging to stderr."),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Install the output manager and share global flags through ``ctx.obj``.

    ``--verbose`` also attaches a DEBUG handler to the root logger, which
    is how the setup server's request log becomes visible.
    """
    from airwallex_cli.output import OutputManager, set_output

    set_output(
        OutputManager(
            format=_pick_format(json_output, plain_output),
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format=_LOG_FORMAT, stream=sys.stderr)

    ctx.ensure_object(dict)
    ctx.obj.update(force=force, verbose=verbose)


def _exit_on_sigint() -> None:
    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: BaseException) -> str:
    """Save the traceback of *exc* under ``<data dir>/logs`` and return the file path."""
    from airwallex_cli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        encoding="utf-8",
    )
    return str(log_path)


def main() -> None:
    """Entry point for the ``airwallex`` console script."""
    from airwallex_cli.exceptions import AirwallexError
    from airwallex_cli.output import error

    _exit_on_sigint()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except AirwallexError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error. Debug log: {_write_crash_log(exc)}")
        sys.exit(EXIT_GENERIC_FAILURE)
