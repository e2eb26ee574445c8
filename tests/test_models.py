"""Tests for the configuration and exchange models.

Covers:
- SigningKey coercion (PEM text, path, mapping) and reading
- Frozen configuration models
- ProtocolRequest/ProtocolResponse header handling and reason phrases
- ErrorPayload serialization (hint presence)
- ServerSettings validation
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from warden.exceptions import ConfigurationError
from warden.models import (
    AUTH_CODE_TTL,
    AuthorizationCodeGrantConfig,
    AuthorizationConfig,
    ErrorPayload,
    GrantKind,
    ProtocolRequest,
    ProtocolResponse,
    ServerSettings,
    SigningKey,
)


class TestSigningKey:
    def test_pem_string_is_content(self, private_pem):
        key = SigningKey.coerce(private_pem)
        assert key.content == private_pem
        assert key.path is None

    def test_other_string_is_path(self):
        key = SigningKey.coerce("/etc/warden/private.pem")
        assert key.path == Path("/etc/warden/private.pem")
        assert key.content is None

    def test_mapping_with_path(self):
        key = SigningKey.coerce({"path": "keys/private.pem"})
        assert key.path == Path("keys/private.pem")

    def test_existing_key_is_returned_unchanged(self):
        key = SigningKey(content="-----BEGIN X-----")
        assert SigningKey.coerce(key) is key

    def test_requires_exactly_one_source(self):
        with pytest.raises(ValidationError):
            SigningKey()
        with pytest.raises(ValidationError):
            SigningKey(path=Path("a.pem"), content="-----BEGIN X-----")

    def test_read_from_file(self, key_files, private_pem):
        assert SigningKey(path=key_files.private).read() == private_pem

    def test_read_missing_file_raises_configuration_error(self, tmp_path):
        key = SigningKey(path=tmp_path / "missing.pem")
        with pytest.raises(ConfigurationError) as exc_info:
            key.read()
        assert isinstance(exc_info.value.__cause__, OSError)


class TestAuthorizationConfig:
    def test_string_key_is_normalized(self, repos, private_pem):
        config = AuthorizationConfig(
            client_repository=repos.clients,
            access_token_repository=repos.access_tokens,
            scope_repository=repos.scopes,
            signing_key=private_pem,
        )
        assert isinstance(config.signing_key, SigningKey)
        assert config.response_type is None

    def test_repositories_are_held_by_reference(self, auth_config, repos):
        assert auth_config.client_repository is repos.clients

    def test_is_frozen(self, auth_config):
        with pytest.raises(ValidationError):
            auth_config.signing_key = SigningKey(content="-----BEGIN X-----")

    def test_wrong_repository_type_rejected(self, repos, private_pem):
        with pytest.raises(ValidationError):
            AuthorizationConfig(
                client_repository=repos.scopes,
                access_token_repository=repos.access_tokens,
                scope_repository=repos.scopes,
                signing_key=private_pem,
            )


class TestAuthorizationCodeGrantConfig:
    def test_defaults(self, repos):
        grant = AuthorizationCodeGrantConfig(
            auth_code_repository=repos.auth_codes,
            refresh_token_repository=repos.refresh_tokens,
        )
        assert grant.kind == GrantKind.AUTHORIZATION_CODE
        assert grant.access_token_ttl == timedelta(hours=1)
        assert grant.refresh_token_ttl == timedelta(days=30)
        assert grant.auth_code_ttl == AUTH_CODE_TTL == timedelta(minutes=10)
        assert grant.require_pkce is True

    def test_iso_duration_is_parsed(self, repos):
        grant = AuthorizationCodeGrantConfig(
            auth_code_repository=repos.auth_codes,
            refresh_token_repository=repos.refresh_tokens,
            access_token_ttl="PT15M",
        )
        assert grant.access_token_ttl == timedelta(minutes=15)

    def test_kind_cannot_be_changed(self, repos):
        with pytest.raises(ValidationError):
            AuthorizationCodeGrantConfig(
                kind="client_credentials",
                auth_code_repository=repos.auth_codes,
                refresh_token_repository=repos.refresh_tokens,
            )


class TestProtocolRequest:
    def test_headers_are_case_insensitive(self):
        request = ProtocolRequest(
            method="POST", uri="https://a/token", headers={"Content-Type": "x"}
        )
        assert request.headers["content-type"] == "x"

    def test_header_pairs_accepted(self):
        request = ProtocolRequest(
            method="GET", uri="https://a/", headers=[("accept", "a"), ("accept", "b")]
        )
        assert request.headers.get_list("accept") == ["a", "b"]

    def test_is_frozen(self):
        request = ProtocolRequest(method="GET", uri="https://a/")
        with pytest.raises(ValidationError):
            request.method = "POST"


class TestProtocolResponse:
    def test_default_reason_phrase(self):
        assert ProtocolResponse(status_code=302).reason_phrase == "Found"

    def test_explicit_reason_phrase_kept(self):
        response = ProtocolResponse(status_code=400, reason_phrase="invalid_request")
        assert response.reason_phrase == "invalid_request"

    def test_unknown_status_has_empty_reason(self):
        assert ProtocolResponse(status_code=599).reason_phrase == ""

    def test_location(self):
        response = ProtocolResponse(status_code=302, headers=[("Location", "https://c/cb")])
        assert response.location == "https://c/cb"
        assert ProtocolResponse(status_code=200).location is None

    def test_payload(self):
        assert ProtocolResponse(status_code=200, body=b'{"a": 1}').payload() == {"a": 1}
        assert ProtocolResponse(status_code=302).payload() is None


class TestErrorPayload:
    def test_hint_included_when_set(self):
        payload = ErrorPayload(error="invalid_request", messages="invalid_request", hint="code missing")
        assert payload.to_json() == (
            b'{"error":"invalid_request","messages":"invalid_request","hint":"code missing"}'
        )

    def test_hint_included_when_explicitly_none(self):
        payload = ErrorPayload(error="invalid_client", messages="invalid_client", hint=None)
        assert b'"hint":null' in payload.to_json()

    def test_hint_omitted_when_unset(self):
        payload = ErrorPayload(error=None, messages="boom")
        assert payload.to_json() == b'{"error":null,"messages":"boom"}'


class TestServerSettings:
    def test_minimal(self):
        settings = ServerSettings(signing_key="private.pem")
        assert settings.signing_key.path == Path("private.pem")
        assert settings.public_key is None
        assert settings.scopes == []

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            ServerSettings(signing_key="private.pem", colour="blue")
