"""Typer application and CLI entry point for warden.

The CLI is an operator aid around a deployment's settings file (see
:mod:`warden.config`):

* ``warden check`` -- load the settings, read both keys, verify that they
  form a pair, and print a summary.
* ``warden decode TOKEN`` -- verify an access token with the public key the
  way a resource server would and print its claims.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log under
the data directory.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from authlib.jose import JoseError

from warden import __version__
from warden.adapters.errors import handle_exception
from warden.exceptions import ConfigurationError, WardenError
from warden.exit_codes import EXIT_GENERIC_FAILURE
from warden.models import ProtocolRequest, ResourceConfig, ServerSettings
from warden.output import error, get_output
from warden.repositories import AccessTokenRepository
from warden.server.tokens import ACCESS_TOKEN_ALGORITHM, access_token_jwt

app = typer.Typer(
    name="warden",
    help="OAuth2 authorization server toolkit.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"warden {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log library debug messages to stderr."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~warden.output.OutputManager` and, with
    ``--verbose``, routes library debug logging to stderr.
    """
    from warden.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.JSON if json_output else OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color))
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format=_LOG_FORMAT, stream=sys.stderr)


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


class _OfflineAccessTokens(AccessTokenRepository):
    """Access-token repository for offline verification: nothing is ever revoked."""

    def persist_new_access_token(self, token: Any) -> None:
        raise WardenError("Offline token verification cannot persist access tokens")

    def revoke_access_token(self, token_id: str) -> None:
        raise WardenError("Offline token verification cannot revoke access tokens")

    def is_access_token_revoked(self, token_id: str) -> bool:
        return False


def _load(config_path: Optional[str]) -> ServerSettings:
    from warden.config import load_settings

    try:
        return load_settings(config_path)
    except ConfigurationError as exc:
        error(exc.message)
        raise typer.Exit(code=exc.exit_code) from None


def _check_key_pair(private_pem: str, public_pem: str) -> None:
    try:
        token = access_token_jwt.encode(
            {"alg": ACCESS_TOKEN_ALGORITHM}, {"sub": "warden-check"}, private_pem
        )
        access_token_jwt.decode(token, public_pem)
    except (JoseError, ValueError) as exc:
        raise ConfigurationError("Signing key and public key do not form a pair") from exc


@app.command("check")
def check_command(
    config_path: Optional[str] = typer.Option(
        None, "--config", "-c", help="Settings file (YAML or JSON)."
    ),
) -> None:
    """Validate a settings file and the keys it points to.

    Example::

        warden check --config /etc/warden/warden.yaml
    """
    settings = _load(config_path)
    output = get_output()
    try:
        private_pem = settings.signing_key.read()
        if settings.public_key is not None:
            _check_key_pair(private_pem, settings.public_key.read())
    except ConfigurationError as exc:
        error(exc.message)
        raise typer.Exit(code=exc.exit_code) from None

    def _source(key: Any) -> str:
        if key is None:
            return "-"
        return str(key.path) if key.path is not None else "inline"

    output.print_settings(
        [
            ("signing_key", _source(settings.signing_key)),
            ("public_key", _source(settings.public_key)),
            ("access_token_ttl", str(settings.access_token_ttl)),
            ("refresh_token_ttl", str(settings.refresh_token_ttl)),
            ("issuer", settings.issuer or "-"),
            ("scopes", " ".join(settings.scopes) or "-"),
        ],
        title="warden settings",
    )
    if settings.public_key is None:
        output.warning("No public_key configured; resource servers cannot verify tokens.")
    else:
        output.success("Settings OK")


@app.command("decode")
def decode_command(
    token: str = typer.Argument(help="Access token (JWT) to verify."),
    config_path: Optional[str] = typer.Option(
        None, "--config", "-c", help="Settings file (YAML or JSON)."
    ),
    scope: Optional[list[str]] = typer.Option(
        None, "--scope", "-s", help="Scope the token must carry (repeatable)."
    ),
) -> None:
    """Verify an access token and print its claims.

    Failures print the JSON error body on stdout and exit non-zero.

    Example::

        warden decode eyJhbGciOi... --scope email
    """
    from warden.facade import initialize_resource_server

    settings = _load(config_path)
    try:
        if settings.public_key is None:
            raise ConfigurationError("Settings have no public_key to verify tokens with")
        server = initialize_resource_server(
            ResourceConfig(
                access_token_repository=_OfflineAccessTokens(),
                public_key=settings.public_key,
            )
        )
        claims = server.validate_authenticated_request(
            ProtocolRequest(
                method="GET",
                uri="https://localhost/",
                headers={"Authorization": f"Bearer {token}"},
            ),
            scopes=scope or None,
        )
    except WardenError as exc:
        handle_exception(exc).terminate()

    get_output().print_claims(claims.model_dump())


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to ``<data_dir>/logs/`` and return its path."""
    from warden.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``warden`` console script.

    :class:`~warden.exceptions.WardenError` exits with the error's
    ``exit_code``; any other exception produces a crash log and a generic
    failure exit.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        if isinstance(exc, WardenError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
