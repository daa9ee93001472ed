"""airwallex_cli -- command-line access to the Airwallex API.

This package currently ships the credential layer of the CLI: a browser
based setup flow that validates API credentials against Airwallex and
stores them locally, plus commands to manage stored accounts.

Typical workflow::

    airwallex auth login        # browser setup
    airwallex auth list         # show configured accounts
    airwallex auth test prod    # check stored credentials

Modules:
    app: Typer application factory and CLI entry point.
    auth: Setup server, secret store, and credential validation.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
