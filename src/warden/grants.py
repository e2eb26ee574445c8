"""Grant-type factory.

Builds the grant configuration an authorization server is initialized with.
Only the authorization-code grant (with its refresh-token companion) is
supported.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Union

from pydantic import ValidationError

from warden.exceptions import ConfigurationError
from warden.models import DEFAULT_ACCESS_TOKEN_TTL, AuthorizationCodeGrantConfig, GrantTypeConfig

logger = logging.getLogger(__name__)

GRANT_INIT_ERROR = "Error happened initializing grant type, please recheck your parameter."


def build_authorization_code_grant(
    auth_code_repository: Any,
    refresh_token_repository: Any,
    access_token_ttl: Union[str, int, timedelta] = DEFAULT_ACCESS_TOKEN_TTL,
) -> GrantTypeConfig:
    """Build the authorization-code grant configuration.

    Authorization codes live for ten minutes; refresh tokens for thirty
    days.

    Args:
        auth_code_repository: Stores issued authorization codes.
        refresh_token_repository: Stores issued refresh tokens.
        access_token_ttl: Access-token lifetime as an ISO-8601 duration
            (``"PT1H"``), seconds, or a :class:`~datetime.timedelta`.

    Returns:
        An :class:`~warden.models.AuthorizationCodeGrantConfig`.

    Raises:
        ConfigurationError: If the duration is malformed or a repository is
            missing or of the wrong type. The underlying error is chained as
            ``__cause__``.
    """
    try:
        grant = AuthorizationCodeGrantConfig(
            auth_code_repository=auth_code_repository,
            refresh_token_repository=refresh_token_repository,
            access_token_ttl=access_token_ttl,
        )
    except (ValidationError, ValueError, TypeError) as exc:
        raise ConfigurationError(GRANT_INIT_ERROR) from exc

    logger.debug(
        "Built %s grant (access tokens live %s)", grant.kind.value, grant.access_token_ttl
    )
    return grant


with_authorization_grant_type = build_authorization_code_grant
