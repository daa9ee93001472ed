"""Built-in CLI sub-commands for airwallex_cli.

* :mod:`~airwallex_cli.commands.auth` -- set up, list, rename, test, and
  remove stored account credentials.

Each module exports a :class:`typer.Typer` sub-application that
:func:`airwallex_cli.app.main` attaches to the root app.
"""
