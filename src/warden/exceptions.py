"""Exception hierarchy for warden.

All exceptions inherit from :class:`WardenError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`warden.exit_codes`.
The exception mapper in :mod:`warden.adapters.errors` turns any exception
into an HTTP error payload, and :func:`warden.app.main` exits with the
error's code when a command fails.

Subclass hierarchy::

    WardenError (exit 1)
    +-- ConfigurationError  (exit 2)
    +-- ProtocolError       (exit 3)

Anything that is not a :class:`WardenError` (or an Authlib ``OAuth2Error``,
which is converted to :class:`ProtocolError`) is treated as an unclassified
server fault and mapped to HTTP 500.
"""

from __future__ import annotations

from typing import Any, Optional

from warden.exit_codes import (
    EXIT_CONFIGURATION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_PROTOCOL_ERROR,
)


class WardenError(Exception):
    """Base exception for all warden errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`warden.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(WardenError):
    """Raised when the server cannot be assembled from the supplied configuration.

    Covers unknown grant kinds, grant construction failures (malformed
    durations, missing repositories), unreadable signing keys and invalid
    settings files. The message is a fixed, human-readable string; the
    underlying failure is available as ``__cause__``.
    """

    exit_code = EXIT_CONFIGURATION_ERROR


class ProtocolError(WardenError):
    """A client-facing OAuth2 protocol error with its own HTTP status.

    Raised by the authorization and resource servers when the engine
    rejects a request (invalid client, invalid grant, invalid scope,
    invalid token, ...). Never retried: protocol errors are caused by the
    client, not by a transient server condition.

    Args:
        code: Machine-readable error identifier (e.g. ``"invalid_grant"``).
        message: Human-readable message; also used as the HTTP reason.
        status_code: HTTP status to respond with.
        hint: Optional extra detail about what to fix.
        redirect_uri: Client redirect URI the error belongs to, when the
            engine had already resolved one.
    """

    exit_code = EXIT_PROTOCOL_ERROR

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        hint: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ):
        super().__init__(message)
        self.code = code
        self.status_code = status_code
        self.hint = hint
        self.redirect_uri = redirect_uri

    @classmethod
    def from_oauth2_error(cls, error: Any) -> ProtocolError:
        """Build a :class:`ProtocolError` from an Authlib ``OAuth2Error``.

        The Authlib error identifier becomes both ``code`` and ``message``;
        its free-form description becomes the ``hint``.
        """
        return cls(
            code=error.error,
            message=error.error,
            status_code=error.status_code,
            hint=error.description or None,
            redirect_uri=getattr(error, "redirect_uri", None),
        )
