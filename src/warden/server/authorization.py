"""Authorization server wired from warden configuration.

:class:`AuthorizationServer` subclasses Authlib's framework-agnostic
``AuthorizationServer`` and fills in the engine hooks Authlib leaves
abstract (client lookup, token persistence, request/response conversion)
from an :class:`~warden.models.AuthorizationConfig` and a grant
configuration. It speaks :class:`~warden.models.ProtocolRequest` in and
:class:`~warden.models.ProtocolResponse` out, so the host framework only
ever meets it through :mod:`warden.adapters`.

Protocol failures are raised as :class:`~warden.exceptions.ProtocolError`,
except errors that already carry the client's redirect URI: those are
rendered as ``302`` redirects back to the client, as OAuth2 requires for
the authorization endpoint.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional
from urllib.parse import urlencode

from authlib.oauth2 import OAuth2Error
from authlib.oauth2.rfc6749 import AuthorizationServer as EngineAuthorizationServer
from authlib.oauth2.rfc6749 import OAuth2Request
from authlib.oauth2.rfc6749.errors import InvalidScopeError
from authlib.oauth2.rfc6749.util import scope_to_list
from authlib.oauth2.rfc7636 import CodeChallenge

from warden.entities import AccessTokenRecord, AuthorizationRequest, Client, RefreshTokenRecord
from warden.exceptions import ConfigurationError, ProtocolError
from warden.models import (
    AuthorizationCodeGrantConfig,
    AuthorizationConfig,
    OIDCConfig,
    ProtocolRequest,
    ProtocolResponse,
)
from warden.server.grants import AuthorizationCodeGrant, RefreshTokenGrant
from warden.server.oidc import OpenIDExtension
from warden.server.tokens import BearerTokenIssuer

logger = logging.getLogger(__name__)


class AuthorizationServer(EngineAuthorizationServer):
    """An authorization-code OAuth2 server over caller-supplied repositories.

    Build it through :func:`~warden.facade.initialize_authorization_server`
    rather than directly.

    Args:
        config: Client, access-token and scope repositories plus the
            signing key.
        grant_config: The authorization-code grant configuration.
        oidc: Optional OpenID Connect configuration. When given, token
            responses for ``openid`` requests carry an ``id_token``.
    """

    def __init__(
        self,
        config: AuthorizationConfig,
        grant_config: AuthorizationCodeGrantConfig,
        oidc: Optional[OIDCConfig] = None,
    ) -> None:
        super().__init__()
        self.config = config
        self.grant_config = grant_config
        self.oidc = oidc

        issuer = config.response_type or BearerTokenIssuer(
            config.signing_key, grant_config.access_token_ttl
        )
        self.register_token_generator("default", issuer)

        extensions: list[Any] = [CodeChallenge(required=grant_config.require_pkce)]
        if oidc is not None:
            extensions.append(
                OpenIDExtension(oidc, config.signing_key, grant_config.auth_code_repository)
            )
        self.register_grant(AuthorizationCodeGrant, extensions)
        self.register_grant(RefreshTokenGrant)

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def validate_authorization_request(self, request: ProtocolRequest) -> AuthorizationRequest:
        """Validate an authorize-endpoint request without issuing a code.

        Checks the client, redirect URI, response type, scopes, PKCE
        challenge and (for OIDC) nonce. Call this before showing a consent
        screen, then :meth:`complete_authorization_request` with the
        user's decision.

        Raises:
            ProtocolError: If the request is invalid.
        """
        try:
            grant = self.get_consent_grant(request)
        except OAuth2Error as error:
            raise ProtocolError.from_oauth2_error(error) from error

        oauth_request = grant.request
        client: Client = oauth_request.client
        return AuthorizationRequest(
            client_id=client.get_client_id(),
            client_name=getattr(client, "name", ""),
            redirect_uri=grant.redirect_uri,
            response_type=oauth_request.response_type,
            scopes=scope_to_list(oauth_request.scope) or [],
            state=oauth_request.state,
            code_challenge=oauth_request.data.get("code_challenge"),
            code_challenge_method=oauth_request.data.get("code_challenge_method"),
        )

    def complete_authorization_request(
        self, request: ProtocolRequest, user_id: Optional[str]
    ) -> ProtocolResponse:
        """Finish an authorize request with the user's decision.

        Args:
            request: The same authorize request that was validated.
            user_id: Identifier of the approving user, or ``None`` when
                the user denied access.

        Returns:
            A ``302`` response redirecting to the client with ``code`` and
            ``state``, or with ``error=access_denied`` when denied.

        Raises:
            ProtocolError: If the request is invalid and no redirect URI
                could be established.
        """
        try:
            return self.create_authorization_response(request, grant_user=user_id)
        except OAuth2Error as error:
            raise ProtocolError.from_oauth2_error(error) from error

    def respond_to_access_token_request(self, request: ProtocolRequest) -> ProtocolResponse:
        """Handle a token-endpoint request (``authorization_code`` or ``refresh_token``).

        Raises:
            ProtocolError: If the client, grant or scope is rejected.
        """
        try:
            return self.create_token_response(request)
        except OAuth2Error as error:
            raise ProtocolError.from_oauth2_error(error) from error

    # ------------------------------------------------------------------
    # Engine hooks
    # ------------------------------------------------------------------

    def query_client(self, client_id: str) -> Optional[Client]:
        return self.config.client_repository.get_client_entity(client_id)

    def send_signal(self, name: str, *args: Any, **kwargs: Any) -> None:
        logger.debug("Signal %s", name)

    def save_token(self, token: Any, request: Any) -> None:
        claims = getattr(token, "claims", None)
        if not claims:
            raise ConfigurationError(
                "The response type must return an IssuedToken carrying its claims."
            )

        client_id = request.client.get_client_id()
        user_id = str(request.user) if request.user is not None else None
        self.config.access_token_repository.persist_new_access_token(
            AccessTokenRecord(
                token_id=claims["jti"],
                client_id=client_id,
                user_id=user_id,
                scope=claims.get("scope", ""),
                issued_at=claims["iat"],
                expires_at=claims["exp"],
            )
        )

        refresh_token = token.get("refresh_token")
        if refresh_token:
            now = int(time.time())
            ttl = int(self.grant_config.refresh_token_ttl.total_seconds())
            self.grant_config.refresh_token_repository.persist_new_refresh_token(
                RefreshTokenRecord(
                    token_id=refresh_token,
                    access_token_id=claims["jti"],
                    client_id=client_id,
                    user_id=user_id,
                    scope=claims.get("scope", ""),
                    issued_at=now,
                    expires_at=now + ttl,
                )
            )
        logger.info("Issued access token %s to client '%s'", claims["jti"], client_id)

    def validate_requested_scope(self, scope: Optional[str], state: Optional[str] = None) -> None:
        repository = self.config.scope_repository
        for identifier in scope_to_list(scope) or []:
            if repository.get_scope_entity_by_identifier(identifier) is None:
                raise InvalidScopeError(description=f'Unknown scope "{identifier}".', state=state)

    def create_oauth2_request(self, request: Any) -> OAuth2Request:
        if isinstance(request, OAuth2Request):
            return request
        uri = request.uri
        if request.query and "?" not in uri:
            uri = f"{uri}?{urlencode(request.query)}"
        return OAuth2Request(request.method, uri, body=dict(request.body), headers=request.headers)

    def handle_response(self, status_code: int, payload: Any, headers: Any) -> ProtocolResponse:
        if isinstance(payload, dict):
            body = json.dumps(payload).encode("utf-8")
        else:
            body = (payload or "").encode("utf-8")
        return ProtocolResponse(status_code=status_code, headers=list(headers or []), body=body)

    def handle_error_response(self, request: Any, error: OAuth2Error) -> ProtocolResponse:
        if error.redirect_uri:
            logger.info("Redirecting %s error back to the client", error.error)
            return super().handle_error_response(request, error)
        logger.warning("OAuth2 request rejected: %s (%s)", error.error, error.description)
        raise ProtocolError.from_oauth2_error(error) from error

