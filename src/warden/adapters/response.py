""":class:`~warden.models.ProtocolResponse` -> Starlette response."""

from __future__ import annotations

from typing import Type

from starlette.responses import Response

from warden.models import ProtocolResponse

JSON_CONTENT_TYPE = "application/json"

PASSTHROUGH_HEADERS = ("Cache-Control", "Pragma", "WWW-Authenticate")


def adapt_response(
    protocol_response: ProtocolResponse, response_class: Type[Response] = Response
) -> Response:
    """Build a host-framework response from *protocol_response*.

    The content type is always ``application/json``. ``Location`` is copied
    only when the protocol response has one. The body is returned, never
    written anywhere else; callers that also want it on stdout write
    ``protocol_response.body`` themselves.

    The reason phrase is not copied: ASGI derives it from the status code.
    It stays available as ``protocol_response.reason_phrase``.
    """
    headers: dict[str, str] = {}
    if protocol_response.location is not None:
        headers["Location"] = protocol_response.location
    for name in PASSTHROUGH_HEADERS:
        value = protocol_response.headers.get(name)
        if value is not None:
            headers[name] = value
    return response_class(
        content=protocol_response.body,
        status_code=protocol_response.status_code,
        headers=headers,
        media_type=JSON_CONTENT_TYPE,
    )
