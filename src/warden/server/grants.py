"""Authlib grants backed by warden repositories.

Authlib instantiates a grant class per request, passing the request and the
server. The grants below reach their repositories through the server
(``self.server.config`` and ``self.server.grant_config``), so one class
serves every :class:`~warden.server.authorization.AuthorizationServer`
instance.

Both grants accept ``none`` as a token-endpoint auth method so public
clients can exchange codes; the PKCE extension then makes the code verifier
mandatory for them.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from authlib.oauth2.rfc6749 import grants
from authlib.oauth2.rfc6749.util import scope_to_list

from warden.entities import AuthCodeRecord, Client, RefreshTokenRecord

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT_AUTH_METHODS = ["client_secret_basic", "client_secret_post", "none"]


class AuthorizationCodeGrant(grants.AuthorizationCodeGrant):
    """Authorization-code grant persisting codes through the auth-code repository."""

    TOKEN_ENDPOINT_AUTH_METHODS = TOKEN_ENDPOINT_AUTH_METHODS

    def save_authorization_code(self, code: str, request: Any) -> AuthCodeRecord:
        server = self.server
        grant_config = server.grant_config
        client: Client = request.client
        user_id = str(request.user)

        scopes = server.config.scope_repository.finalize_scopes(
            scope_to_list(request.scope) or [],
            self.GRANT_TYPE,
            client,
            user_id,
        )
        ttl = int(grant_config.auth_code_ttl.total_seconds())
        record = AuthCodeRecord(
            code=code,
            client_id=client.get_client_id(),
            user_id=user_id,
            redirect_uri=request.redirect_uri,
            scope=" ".join(scopes),
            expires_at=int(time.time()) + ttl,
            nonce=request.data.get("nonce"),
            code_challenge=request.data.get("code_challenge"),
            code_challenge_method=request.data.get("code_challenge_method"),
        )
        grant_config.auth_code_repository.persist_new_auth_code(record)
        logger.info(
            "Issued authorization code for client '%s' and user '%s'",
            record.client_id,
            user_id,
        )
        return record

    def query_authorization_code(self, code: str, client: Client) -> Optional[AuthCodeRecord]:
        repository = self.server.grant_config.auth_code_repository
        record = repository.get_auth_code(code)
        if record is None or record.client_id != client.get_client_id():
            return None
        if record.is_expired() or repository.is_auth_code_revoked(code):
            logger.debug("Authorization code for client '%s' is spent", record.client_id)
            return None
        return record

    def delete_authorization_code(self, authorization_code: AuthCodeRecord) -> None:
        self.server.grant_config.auth_code_repository.revoke_auth_code(authorization_code.code)

    def authenticate_user(self, authorization_code: AuthCodeRecord) -> str:
        return authorization_code.user_id


class RefreshTokenGrant(grants.RefreshTokenGrant):
    """Refresh-token grant with rotation.

    Every successful refresh issues a new refresh token and revokes the old
    refresh token together with the access token it was issued alongside.
    """

    TOKEN_ENDPOINT_AUTH_METHODS = TOKEN_ENDPOINT_AUTH_METHODS
    INCLUDE_NEW_REFRESH_TOKEN = True

    def authenticate_refresh_token(self, refresh_token: str) -> Optional[RefreshTokenRecord]:
        repository = self.server.grant_config.refresh_token_repository
        record = repository.get_refresh_token(refresh_token)
        if record is None or record.is_expired():
            return None
        if repository.is_refresh_token_revoked(record.token_id):
            logger.warning("Revoked refresh token presented by client '%s'", record.client_id)
            return None
        return record

    def authenticate_user(self, refresh_token: RefreshTokenRecord) -> Optional[str]:
        return refresh_token.user_id

    def revoke_old_credential(self, refresh_token: RefreshTokenRecord) -> None:
        self.server.grant_config.refresh_token_repository.revoke_refresh_token(
            refresh_token.token_id
        )
        self.server.config.access_token_repository.revoke_access_token(
            refresh_token.access_token_id
        )
