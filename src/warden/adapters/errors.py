"""Map exceptions to JSON error responses.

:func:`handle_exception` classifies an exception and returns an
:class:`ErrorOutcome`; it never writes output or exits by itself. The
caller picks what happens next:

* ``outcome.response`` -- the host response, when a response class was given;
* ``outcome.emit()`` -- write the JSON body to a stream;
* ``outcome.terminate()`` -- write the JSON body, then exit the process.

Two shapes are produced::

    {"error": "invalid_grant", "messages": "invalid_grant", "hint": "..."}  # protocol error
    {"error": null, "messages": "boom"}                                     # anything else, HTTP 500
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import IO, NoReturn, Optional, Type

from authlib.oauth2 import OAuth2Error
from starlette.responses import Response

from warden.exceptions import ProtocolError, WardenError
from warden.exit_codes import EXIT_SERVER_ERROR
from warden.models import ErrorPayload, reason_phrase_for

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
SERVER_ERROR_STATUS = 500


@dataclass(frozen=True)
class ErrorOutcome:
    """The result of mapping an exception.

    Attributes:
        payload: The error body before serialization.
        status_code: HTTP status to respond with.
        reason_phrase: HTTP reason phrase (the error message for protocol
            errors).
        body: ``payload`` serialized as JSON.
        exit_code: Process exit code used by :meth:`terminate`.
        response: The host response, or ``None`` when no response class was
            supplied.
    """

    payload: ErrorPayload
    status_code: int
    reason_phrase: str
    body: bytes
    exit_code: int
    response: Optional[Response] = None

    @property
    def fatal(self) -> bool:
        """``True`` when there is no response to return to a client."""
        return self.response is None

    def emit(self, stream: Optional[IO[str]] = None) -> None:
        """Write the JSON body, followed by a newline, to *stream* (stdout by default)."""
        stream = stream or sys.stdout
        stream.write(self.body.decode("utf-8") + "\n")
        stream.flush()

    def terminate(self, stream: Optional[IO[str]] = None) -> NoReturn:
        """Write the JSON body and exit the process with :attr:`exit_code`."""
        self.emit(stream)
        sys.exit(self.exit_code)


def handle_exception(
    exc: BaseException, response_class: Optional[Type[Response]] = None
) -> ErrorOutcome:
    """Classify *exc* and build its JSON error outcome.

    Authlib ``OAuth2Error`` instances are treated as protocol errors. A
    :class:`~warden.exceptions.ProtocolError` keeps its own status, uses its
    message as the reason phrase, and always carries a ``hint`` key. Any
    other exception becomes a ``500`` whose ``error`` is the exception's
    ``code`` attribute, or ``null``.

    Args:
        exc: The exception to map.
        response_class: Host response class to build ``outcome.response``
            with. Without it the outcome is :attr:`~ErrorOutcome.fatal`.
    """
    if isinstance(exc, OAuth2Error):
        exc = ProtocolError.from_oauth2_error(exc)

    if isinstance(exc, ProtocolError):
        payload = ErrorPayload(error=exc.code, messages=exc.message, hint=exc.hint)
        status_code = exc.status_code
        reason_phrase = exc.message
        exit_code = exc.exit_code
        logger.warning("Protocol error %s (%s): %s", exc.code, status_code, exc.hint)
    else:
        payload = ErrorPayload(error=_error_code(exc), messages=str(exc))
        status_code = SERVER_ERROR_STATUS
        reason_phrase = reason_phrase_for(SERVER_ERROR_STATUS)
        exit_code = exc.exit_code if isinstance(exc, WardenError) else EXIT_SERVER_ERROR
        logger.error("Unhandled server error: %s", exc, exc_info=exc)

    body = payload.to_json()
    response = None
    if response_class is not None:
        response = response_class(
            content=body, status_code=status_code, media_type=JSON_CONTENT_TYPE
        )
    return ErrorOutcome(
        payload=payload,
        status_code=status_code,
        reason_phrase=reason_phrase,
        body=body,
        exit_code=exit_code,
        response=response,
    )


def _error_code(exc: BaseException) -> Optional[str | int]:
    code = getattr(exc, "code", None)
    return code if isinstance(code, (str, int)) else None
