"""Numeric process exit codes used when an error outcome terminates the process.

Each constant maps to an error category and is referenced by the
corresponding :class:`~warden.exceptions.WardenError` subclass. Deployments
that run the facade without a response channel (CLI tools, one-shot CGI
style handlers) terminate through
:meth:`~warden.adapters.errors.ErrorOutcome.terminate`, and wrapper scripts
can inspect the exit code to tell the failure class apart without parsing
the JSON written to stdout.

Example::

    $ warden decode "$TOKEN"
    $ echo $?
    3   # EXIT_PROTOCOL_ERROR -- the token was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIGURATION_ERROR = 2
"""The server could not be assembled from the supplied configuration."""

EXIT_PROTOCOL_ERROR = 3
"""The OAuth2 engine rejected the request (invalid client, grant, scope, token)."""

EXIT_SERVER_ERROR = 5
"""An unexpected exception escaped while processing a request (HTTP 500)."""
