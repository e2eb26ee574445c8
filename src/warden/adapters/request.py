"""Starlette request -> :class:`~warden.models.ProtocolRequest`."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from starlette.requests import Request

from warden.models import ProtocolRequest

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def adapt_request(request: Request, body: Optional[Mapping[str, Any]] = None) -> ProtocolRequest:
    """Copy *request* into a :class:`~warden.models.ProtocolRequest`.

    Method, URL, headers and query parameters are copied as-is; *body* is
    the already-parsed form mapping and replaces whatever the request
    carried. Nothing is validated here.
    """
    return ProtocolRequest(
        method=request.method,
        uri=str(request.url),
        headers=request.headers.items(),
        query=dict(request.query_params),
        body=dict(body or {}),
    )


handle_request = adapt_request


async def read_request(request: Request) -> ProtocolRequest:
    """Parse a form-encoded body, then :func:`adapt_request`.

    Requests with any other content type get an empty body.
    """
    body: dict[str, Any] = {}
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        body = {key: value for key, value in form.items()}
    elif content_type:
        logger.debug("Ignoring %s request body", content_type)
    return adapt_request(request, body)
