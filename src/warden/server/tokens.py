"""Bearer token issuance: RS256 JWT access tokens plus opaque refresh tokens.

:class:`BearerTokenIssuer` is the default response-type strategy of an
:class:`~warden.server.authorization.AuthorizationServer`. It is registered
with Authlib as the ``default`` token generator, so it is called with the
Authlib generator signature and returns the token-endpoint response body.

The body is an :class:`IssuedToken`, a ``dict`` that also remembers the
claims it was minted from. The server's ``save_token`` hook reads those
claims to persist the access token under its ``jti`` without decoding the
JWT again.
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any, Optional

from authlib.common.security import generate_token
from authlib.jose import JsonWebToken

from warden.models import SigningKey

logger = logging.getLogger(__name__)

ACCESS_TOKEN_ALGORITHM = "RS256"
TOKEN_ID_LENGTH = 40
REFRESH_TOKEN_LENGTH = 48

access_token_jwt = JsonWebToken([ACCESS_TOKEN_ALGORITHM])
"""JWT codec for access tokens; any other ``alg`` is rejected on decode."""


class IssuedToken(dict):
    """A token response body together with the access-token claims it carries."""

    def __init__(self, *args: Any, claims: Optional[dict[str, Any]] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.claims: dict[str, Any] = claims or {}


class BearerTokenIssuer:
    """Mint JWT access tokens signed with the server's private key.

    Access-token claims: ``jti``, ``aud`` (client id), ``sub`` (user id,
    empty for client-only tokens), ``iat``, ``nbf``, ``exp`` and ``scope``
    (space separated).

    Args:
        signing_key: Private RSA key used to sign access tokens.
        access_token_ttl: Lifetime of issued access tokens.
    """

    def __init__(self, signing_key: SigningKey, access_token_ttl: timedelta) -> None:
        self._key = signing_key.read()
        self._ttl = int(access_token_ttl.total_seconds())

    @property
    def expires_in(self) -> int:
        return self._ttl

    def __call__(
        self,
        grant_type: str,
        client: Any,
        user: Optional[str] = None,
        scope: Optional[str] = None,
        expires_in: Optional[int] = None,
        include_refresh_token: bool = True,
    ) -> IssuedToken:
        if scope:
            scope = client.get_allowed_scope(scope)
        if expires_in is None:
            expires_in = self._ttl

        now = int(time.time())
        claims: dict[str, Any] = {
            "jti": generate_token(TOKEN_ID_LENGTH),
            "aud": client.get_client_id(),
            "sub": str(user) if user is not None else "",
            "iat": now,
            "nbf": now,
            "exp": now + expires_in,
            "scope": scope or "",
        }
        access_token = access_token_jwt.encode(
            {"alg": ACCESS_TOKEN_ALGORITHM}, claims, self._key
        )

        token = IssuedToken(
            token_type="Bearer",
            access_token=access_token.decode("ascii"),
            expires_in=expires_in,
            claims=claims,
        )
        if include_refresh_token:
            token["refresh_token"] = generate_token(REFRESH_TOKEN_LENGTH)
        if scope:
            token["scope"] = scope

        logger.debug(
            "Minted access token %s for client '%s' (%s grant)",
            claims["jti"],
            claims["aud"],
            grant_type,
        )
        return token
