"""Entry points for assembling warden servers.

Typical wiring::

    from warden import facade

    config = facade.with_config(clients, access_tokens, scopes, "/etc/warden/private.pem")
    grant = facade.with_authorization_grant_type(auth_codes, refresh_tokens, "PT15M")
    server = facade.initialize_authorization_server(
        config, grant, oidc=facade.with_oidc(identities, {"email": "email"})
    )

    resources = facade.initialize_resource_server(
        facade.ResourceConfig(access_token_repository=access_tokens, public_key=public_pem)
    )
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from warden.exceptions import ConfigurationError
from warden.grants import build_authorization_code_grant, with_authorization_grant_type
from warden.models import (
    AuthorizationCodeGrantConfig,
    AuthorizationConfig,
    ClaimRule,
    GrantConfig,
    GrantKind,
    OIDCConfig,
    ResourceConfig,
    SigningKey,
)
from warden.repositories import (
    AccessTokenRepository,
    ClientRepository,
    IdentityRepository,
    ScopeRepository,
)
from warden.server import AuthorizationServer, ResourceServer

logger = logging.getLogger(__name__)

UNKNOWN_GRANT_ERROR = "Unknown grant type, please recheck your parameter."

__all__ = [
    "ResourceConfig",
    "build_authorization_code_grant",
    "initialize_authorization_server",
    "initialize_resource_server",
    "with_authorization_grant_type",
    "with_config",
    "with_oidc",
]


def with_config(
    client_repository: ClientRepository,
    access_token_repository: AccessTokenRepository,
    scope_repository: ScopeRepository,
    signing_key: Union[str, Path, dict, SigningKey],
    response_type: Optional[Callable[..., Any]] = None,
) -> AuthorizationConfig:
    """Bundle the repositories and signing key of an authorization server.

    ``signing_key`` may be a PEM string, a file path, a ``{"path": ...}``
    or ``{"content": ...}`` mapping, or a :class:`~warden.models.SigningKey`.

    Raises:
        ConfigurationError: If the key or a repository is invalid.
    """
    try:
        return AuthorizationConfig(
            client_repository=client_repository,
            access_token_repository=access_token_repository,
            scope_repository=scope_repository,
            signing_key=signing_key,
            response_type=response_type,
        )
    except ValidationError as exc:
        raise ConfigurationError("Invalid authorization server configuration.") from exc


def with_oidc(
    identity_repository: IdentityRepository,
    claim_set: Optional[dict[str, ClaimRule]] = None,
) -> OIDCConfig:
    """Build the OpenID Connect extension; ``claim_set`` defaults to empty."""
    return OIDCConfig(identity_repository=identity_repository, claim_set=claim_set or {})


def initialize_authorization_server(
    config: AuthorizationConfig,
    grant_type: GrantConfig,
    oidc: Optional[OIDCConfig] = None,
) -> AuthorizationServer:
    """Create an authorization server for the given grant configuration.

    Raises:
        ConfigurationError: If ``grant_type`` is not a supported grant kind.
    """
    if grant_type.kind == GrantKind.AUTHORIZATION_CODE and isinstance(
        grant_type, AuthorizationCodeGrantConfig
    ):
        logger.debug("Initializing authorization server (oidc=%s)", oidc is not None)
        return AuthorizationServer(config, grant_type, oidc)
    raise ConfigurationError(UNKNOWN_GRANT_ERROR)


def initialize_resource_server(config: ResourceConfig) -> ResourceServer:
    """Create a resource server validating tokens with ``config.public_key``."""
    return ResourceServer(config)
