"""Translation between Starlette and the framework-neutral exchange models.

- :func:`adapt_request` / :func:`read_request` -- Starlette request to
  :class:`~warden.models.ProtocolRequest`.
- :func:`adapt_response` -- :class:`~warden.models.ProtocolResponse` to a
  Starlette response.
- :func:`handle_exception` -- any exception to a JSON error outcome.
"""

from warden.adapters.errors import ErrorOutcome, handle_exception
from warden.adapters.request import adapt_request, handle_request, read_request
from warden.adapters.response import adapt_response

__all__ = [
    "ErrorOutcome",
    "adapt_request",
    "adapt_response",
    "handle_exception",
    "handle_request",
    "read_request",
]
