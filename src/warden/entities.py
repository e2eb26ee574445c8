"""Entities exchanged between the repositories and the OAuth2 engine.

Repositories (see :mod:`warden.repositories`) return and persist these
models; the Authlib grants call the small accessor methods defined on them
(``get_scope``, ``get_redirect_uri``, ``check_client``, ...), which is why
they look more like Authlib mixins than plain data containers.

Timestamps are integer Unix epoch seconds, the unit Authlib works in.
"""

from __future__ import annotations

import secrets
import time
from typing import Any, Optional

from authlib.oauth2.rfc6749 import ClientMixin
from authlib.oauth2.rfc6749.util import scope_to_list
from pydantic import BaseModel, ConfigDict, Field


def _now() -> int:
    return int(time.time())


# --- Clients, scopes, identities ---


class Client(BaseModel, ClientMixin):
    """A registered OAuth2 client.

    Clients without a ``client_secret`` are *public* clients: they
    authenticate at the token endpoint with the ``none`` method and must
    use PKCE. Confidential clients authenticate with
    ``client_secret_basic`` or ``client_secret_post``.

    Example::

        Client(
            client_id="web-app",
            client_secret="s3cret",
            redirect_uris=["https://app.example.com/callback"],
            scope="basic email",
        )
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: Optional[str] = None
    name: str = ""
    redirect_uris: list[str] = Field(default_factory=list)
    grant_types: list[str] = Field(
        default_factory=lambda: ["authorization_code", "refresh_token"]
    )
    response_types: list[str] = Field(default_factory=lambda: ["code"])
    scope: str = Field(
        default="",
        description="Space-separated scopes the client may request; empty allows any",
    )

    @property
    def is_confidential(self) -> bool:
        return bool(self.client_secret)

    def get_client_id(self) -> str:
        return self.client_id

    def get_default_redirect_uri(self) -> Optional[str]:
        return self.redirect_uris[0] if self.redirect_uris else None

    def get_allowed_scope(self, scope: str) -> str:
        if not scope or not self.scope:
            return scope
        allowed = set(scope_to_list(self.scope))
        return " ".join(s for s in scope_to_list(scope) if s in allowed)

    def check_redirect_uri(self, redirect_uri: str) -> bool:
        return redirect_uri in self.redirect_uris

    def check_client_secret(self, client_secret: str) -> bool:
        if not self.client_secret:
            return False
        return secrets.compare_digest(self.client_secret, client_secret)

    def check_endpoint_auth_method(self, method: str, endpoint: str) -> bool:
        if not self.is_confidential:
            return method == "none"
        return method in ("client_secret_basic", "client_secret_post")

    def check_response_type(self, response_type: str) -> bool:
        return response_type in self.response_types

    def check_grant_type(self, grant_type: str) -> bool:
        return grant_type in self.grant_types


class ScopeEntity(BaseModel):
    """A scope known to the server."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    description: str = ""


class Identity(BaseModel):
    """An end user as seen by the OpenID Connect claim source.

    ``claims`` holds the raw attributes the identity repository knows about
    the user; :class:`~warden.models.OIDCConfig` claim rules read from it.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str
    claims: dict[str, Any] = Field(default_factory=dict)

    def get_identifier(self) -> str:
        return self.identifier

    def get_claims(self) -> dict[str, Any]:
        return dict(self.claims)


# --- Persisted grants and tokens ---


class AuthCodeRecord(BaseModel):
    """An issued authorization code, including its PKCE challenge and OIDC nonce."""

    model_config = ConfigDict(frozen=True)

    code: str
    client_id: str
    user_id: str
    redirect_uri: Optional[str] = None
    scope: str = ""
    expires_at: int
    nonce: Optional[str] = None
    auth_time: int = Field(default_factory=_now)
    code_challenge: Optional[str] = None
    code_challenge_method: Optional[str] = None

    def get_redirect_uri(self) -> Optional[str]:
        return self.redirect_uri

    def get_scope(self) -> str:
        return self.scope

    def get_nonce(self) -> Optional[str]:
        return self.nonce

    def get_auth_time(self) -> int:
        return self.auth_time

    def is_expired(self) -> bool:
        return self.expires_at <= _now()


class AccessTokenRecord(BaseModel):
    """The persisted view of an issued access token (keyed by its ``jti``)."""

    model_config = ConfigDict(frozen=True)

    token_id: str
    client_id: str
    user_id: Optional[str] = None
    scope: str = ""
    issued_at: int
    expires_at: int


class RefreshTokenRecord(BaseModel):
    """An issued refresh token and the access token it was issued with."""

    model_config = ConfigDict(frozen=True)

    token_id: str
    access_token_id: str
    client_id: str
    user_id: Optional[str] = None
    scope: str = ""
    issued_at: int
    expires_at: int

    def check_client(self, client: Client) -> bool:
        return self.client_id == client.get_client_id()

    def get_scope(self) -> str:
        return self.scope

    def get_expires_in(self) -> int:
        return self.expires_at - self.issued_at

    def is_expired(self) -> bool:
        return self.expires_at <= _now()


# --- Results handed back to callers ---


class AccessTokenClaims(BaseModel):
    """A verified bearer token, as returned by the resource server."""

    model_config = ConfigDict(frozen=True)

    token_id: str
    client_id: str
    user_id: Optional[str] = None
    scope: str = ""
    issued_at: int
    expires_at: int
    revoked: bool = False

    @property
    def scopes(self) -> list[str]:
        return scope_to_list(self.scope) or []

    def get_scope(self) -> str:
        return self.scope

    def is_expired(self) -> bool:
        return self.expires_at <= _now()

    def is_revoked(self) -> bool:
        return self.revoked


class AuthorizationRequest(BaseModel):
    """A validated authorize-endpoint request, ready for a consent decision."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_name: str = ""
    redirect_uri: str
    response_type: str = "code"
    scopes: list[str] = Field(default_factory=list)
    state: Optional[str] = None
    code_challenge: Optional[str] = None
    code_challenge_method: Optional[str] = None
