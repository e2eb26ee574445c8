"""OpenID Connect id tokens for the authorization-code grant.

:class:`OpenIDExtension` plugs into Authlib's ``OpenIDCode`` grant
extension. When a token request's scope contains ``openid`` the engine
asks it for the signing configuration and the user info; this module
answers from the :class:`~warden.models.OIDCConfig`: the identity comes
from the identity repository, claims from the claim set, and the result is
filtered by the standard OIDC scope-to-claim table.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlsplit

from authlib.oauth2.rfc6749.errors import InvalidGrantError
from authlib.oauth2.rfc6749.util import scope_to_list
from authlib.oidc.core import UserInfo
from authlib.oidc.core.grants import OpenIDCode

from warden.entities import Identity
from warden.models import ClaimRule, OIDCConfig, SigningKey
from warden.repositories import AuthCodeRepository

logger = logging.getLogger(__name__)

ID_TOKEN_ALGORITHM = "RS256"

SCOPE_CLAIMS: dict[str, tuple[str, ...]] = {
    "profile": (
        "name",
        "family_name",
        "given_name",
        "middle_name",
        "nickname",
        "preferred_username",
        "profile",
        "picture",
        "website",
        "gender",
        "birthdate",
        "zoneinfo",
        "locale",
        "updated_at",
    ),
    "email": ("email", "email_verified"),
    "address": ("address",),
    "phone": ("phone_number", "phone_number_verified"),
}
"""Standard claims released by each OIDC scope (OpenID Connect Core 5.4)."""

_CLAIM_SCOPES = {claim: scope for scope, claims in SCOPE_CLAIMS.items() for claim in claims}


def resolve_claims(identity: Identity, claim_set: dict[str, ClaimRule]) -> dict[str, Any]:
    """Evaluate *claim_set* against *identity*.

    An empty claim set releases the identity's own claims unchanged. Rules
    producing ``None`` are dropped.
    """
    if not claim_set:
        return identity.get_claims()
    claims: dict[str, Any] = {}
    raw = identity.get_claims()
    for name, rule in claim_set.items():
        value = rule(identity) if callable(rule) else raw.get(rule)
        if value is not None:
            claims[name] = value
    return claims


def filter_claims(claims: dict[str, Any], scope: Optional[str]) -> dict[str, Any]:
    """Keep the claims *scope* releases.

    Standard claims need their scope; claims outside the standard table are
    always kept. ``sub`` is never taken from *claims*.
    """
    granted = set(scope_to_list(scope) or [])
    return {
        name: value
        for name, value in claims.items()
        if name != "sub" and (name not in _CLAIM_SCOPES or _CLAIM_SCOPES[name] in granted)
    }


def _origin(uri: str) -> str:
    parts = urlsplit(uri)
    return f"{parts.scheme}://{parts.netloc}"


class OpenIDExtension(OpenIDCode):
    """Authlib ``OpenIDCode`` extension fed by an :class:`~warden.models.OIDCConfig`."""

    def __init__(
        self,
        config: OIDCConfig,
        signing_key: SigningKey,
        auth_code_repository: AuthCodeRepository,
    ) -> None:
        super().__init__(require_nonce=False)
        self.config = config
        self._key = signing_key.read()
        self._auth_codes = auth_code_repository

    def exists_nonce(self, nonce: str, request: Any) -> bool:
        return self._auth_codes.exists_nonce(nonce, request.client_id)

    def get_jwt_config(self, grant: Any) -> dict[str, Any]:
        return {
            "key": self._key,
            "alg": ID_TOKEN_ALGORITHM,
            "iss": self.config.issuer or _origin(grant.request.uri),
            "exp": self.config.id_token_ttl,
        }

    def generate_user_info(self, user: Any, scope: str) -> UserInfo:
        identity = self.config.identity_repository.get_user_entity_by_identifier(str(user))
        if identity is None:
            raise InvalidGrantError(description=f'Unknown identity "{user}".')
        claims = filter_claims(resolve_claims(identity, self.config.claim_set), scope)
        logger.debug("Releasing claims %s for '%s'", sorted(claims), identity.get_identifier())
        return UserInfo(sub=identity.get_identifier(), **claims)
