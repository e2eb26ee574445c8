"""Tests for ProtocolResponse -> Starlette response adaptation."""

from __future__ import annotations

from starlette.responses import Response

from warden.adapters import adapt_response
from warden.models import ProtocolResponse


class _CustomResponse(Response):
    pass


class TestAdaptResponse:
    def test_redirect_keeps_status_and_location(self):
        protocol = ProtocolResponse(
            status_code=302, headers=[("Location", "https://app.example.com/cb?code=abc")]
        )
        response = adapt_response(protocol)
        assert response.status_code == 302
        assert response.headers["location"] == "https://app.example.com/cb?code=abc"

    def test_location_omitted_when_absent(self):
        response = adapt_response(ProtocolResponse(status_code=200, body=b"{}"))
        assert "location" not in response.headers

    def test_content_type_is_always_json(self):
        protocol = ProtocolResponse(
            status_code=200, headers=[("Content-Type", "text/plain")], body=b"{}"
        )
        assert adapt_response(protocol).headers["content-type"] == "application/json"

    def test_body_copied_verbatim(self):
        body = b'{"access_token":"abc","token_type":"Bearer"}'
        assert adapt_response(ProtocolResponse(status_code=200, body=body)).body == body

    def test_cache_headers_passed_through(self):
        protocol = ProtocolResponse(
            status_code=200,
            headers=[("Cache-Control", "no-store"), ("Pragma", "no-cache"), ("X-Other", "1")],
            body=b"{}",
        )
        response = adapt_response(protocol)
        assert response.headers["cache-control"] == "no-store"
        assert response.headers["pragma"] == "no-cache"
        assert "x-other" not in response.headers

    def test_no_implicit_output(self, capsys):
        adapt_response(ProtocolResponse(status_code=200, body=b'{"a":1}'))
        assert capsys.readouterr().out == ""

    def test_custom_response_class(self):
        response = adapt_response(ProtocolResponse(status_code=200), _CustomResponse)
        assert isinstance(response, _CustomResponse)

    def test_reason_phrase_stays_on_protocol_response(self):
        protocol = ProtocolResponse(status_code=400, reason_phrase="invalid_request")
        adapt_response(protocol)
        assert protocol.reason_phrase == "invalid_request"
