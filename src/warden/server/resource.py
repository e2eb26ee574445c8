"""Resource server: bearer access-token validation.

A :class:`ResourceServer` checks the ``Authorization: Bearer`` header of an
incoming request against the public half of the authorization server's
signing key, then asks the access-token repository whether the token was
revoked. It never talks to the authorization server.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from authlib.jose import JoseError
from authlib.oauth2 import OAuth2Error, ResourceProtector
from authlib.oauth2.rfc6750 import BearerTokenValidator

from warden.entities import AccessTokenClaims
from warden.exceptions import ProtocolError
from warden.models import ProtocolRequest, ResourceConfig
from warden.server.tokens import access_token_jwt

logger = logging.getLogger(__name__)


class JWTBearerTokenValidator(BearerTokenValidator):
    """Validate RS256 JWT access tokens issued by :class:`~warden.server.tokens.BearerTokenIssuer`."""

    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(realm=config.realm)
        self._key = config.public_key.read()
        self._access_tokens = config.access_token_repository

    def authenticate_token(self, token_string: str) -> Optional[AccessTokenClaims]:
        try:
            claims = access_token_jwt.decode(token_string, self._key)
            claims.validate()
            token_id = claims["jti"]
            result = AccessTokenClaims(
                token_id=token_id,
                client_id=claims["aud"],
                user_id=claims.get("sub") or None,
                scope=claims.get("scope", ""),
                issued_at=claims["iat"],
                expires_at=claims["exp"],
                revoked=self._access_tokens.is_access_token_revoked(token_id),
            )
        except (JoseError, KeyError, ValueError) as exc:
            logger.debug("Rejected bearer token: %s", exc)
            return None
        return result


class ResourceServer:
    """Validates bearer tokens on requests to protected resources.

    Build it through :func:`~warden.facade.initialize_resource_server`.

    Example::

        server = initialize_resource_server(config)
        claims = server.validate_authenticated_request(
            adapt_request(request, {}), scopes=["email"]
        )
        claims.user_id
    """

    def __init__(self, config: ResourceConfig) -> None:
        self.config = config
        self.validator = JWTBearerTokenValidator(config)
        self._protector = ResourceProtector()
        self._protector.register_token_validator(self.validator)

    def validate_authenticated_request(
        self, request: ProtocolRequest, scopes: Optional[list[str]] = None
    ) -> AccessTokenClaims:
        """Return the claims of the request's bearer token.

        Args:
            request: The incoming request.
            scopes: Scopes the token must all carry.

        Raises:
            ProtocolError: ``missing_authorization`` or ``invalid_token``
                (401) when the token is absent, malformed, expired or
                revoked; ``insufficient_scope`` (403) when a required
                scope is missing.
        """
        try:
            claims: Any = self._protector.validate_request(scopes, request)
        except OAuth2Error as error:
            logger.warning("Bearer token rejected: %s", error.error)
            raise ProtocolError.from_oauth2_error(error) from error
        logger.debug("Authenticated request for client '%s'", claims.client_id)
        return claims
