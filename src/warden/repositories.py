"""Abstract repositories the authorization server reads from and writes to.

Persistence is not part of warden. Applications implement these abstract
base classes over their own storage (SQL, Redis, an in-memory dict for
tests) and hand the instances to the configuration builders in
:mod:`warden.facade`:

- :class:`ClientRepository` -- registered OAuth2 clients.
- :class:`ScopeRepository` -- known scopes and per-request scope finalization.
- :class:`AccessTokenRepository` -- issued access tokens and their revocation.
- :class:`RefreshTokenRepository` -- issued refresh tokens and their revocation.
- :class:`AuthCodeRepository` -- issued authorization codes.
- :class:`IdentityRepository` -- end users, for OpenID Connect claims.

Repository instances are created once at process startup and shared across
requests; any locking or transactional discipline they need is theirs to
provide.

See Also:
    :mod:`warden.entities` for the models these methods accept and return.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from warden.entities import (
    AccessTokenRecord,
    AuthCodeRecord,
    Client,
    Identity,
    RefreshTokenRecord,
    ScopeEntity,
)


class ClientRepository(ABC):
    """Look up registered clients by their identifier."""

    @abstractmethod
    def get_client_entity(self, client_id: str) -> Optional[Client]:
        """Return the client registered under *client_id*, or ``None``.

        Client authentication (secret comparison, allowed auth methods) is
        performed on the returned :class:`~warden.entities.Client`, so
        implementations that store hashed secrets should return a subclass
        overriding :meth:`~warden.entities.Client.check_client_secret`.
        """
        ...


class ScopeRepository(ABC):
    """Resolve requested scopes and decide which ones a grant actually receives."""

    @abstractmethod
    def get_scope_entity_by_identifier(self, identifier: str) -> Optional[ScopeEntity]:
        """Return the scope named *identifier*, or ``None`` if it is unknown.

        Any unknown scope in an authorization request fails the request
        with ``invalid_scope``.
        """
        ...

    def finalize_scopes(
        self,
        scopes: list[str],
        grant_type: str,
        client: Client,
        user_id: Optional[str] = None,
    ) -> list[str]:
        """Adjust the scopes granted to *client* before a code is issued.

        The default keeps the requested scopes unchanged. Override to add
        or remove scopes based on the client or user.

        Args:
            scopes: Scopes requested and already validated.
            grant_type: The grant being processed (``"authorization_code"``).
            client: The requesting client.
            user_id: Identifier of the approving user, if any.

        Returns:
            The scopes to grant.
        """
        return scopes


class AccessTokenRepository(ABC):
    """Persist issued access tokens and answer revocation queries."""

    @abstractmethod
    def persist_new_access_token(self, token: AccessTokenRecord) -> None:
        """Store a newly issued access token."""
        ...

    @abstractmethod
    def revoke_access_token(self, token_id: str) -> None:
        """Mark the access token with ``jti`` *token_id* as revoked."""
        ...

    @abstractmethod
    def is_access_token_revoked(self, token_id: str) -> bool:
        """Return ``True`` if the access token with ``jti`` *token_id* was revoked."""
        ...


class RefreshTokenRepository(ABC):
    """Persist issued refresh tokens, look them up, and revoke them on rotation."""

    @abstractmethod
    def persist_new_refresh_token(self, token: RefreshTokenRecord) -> None:
        """Store a newly issued refresh token."""
        ...

    @abstractmethod
    def get_refresh_token(self, token_id: str) -> Optional[RefreshTokenRecord]:
        """Return the refresh token *token_id*, or ``None`` if it is unknown."""
        ...

    @abstractmethod
    def revoke_refresh_token(self, token_id: str) -> None:
        """Mark the refresh token *token_id* as revoked."""
        ...

    @abstractmethod
    def is_refresh_token_revoked(self, token_id: str) -> bool:
        """Return ``True`` if the refresh token *token_id* was revoked."""
        ...


class AuthCodeRepository(ABC):
    """Persist issued authorization codes until they are exchanged."""

    @abstractmethod
    def persist_new_auth_code(self, code: AuthCodeRecord) -> None:
        """Store a newly issued authorization code."""
        ...

    @abstractmethod
    def get_auth_code(self, code: str) -> Optional[AuthCodeRecord]:
        """Return the authorization code *code*, or ``None`` if it is unknown."""
        ...

    @abstractmethod
    def revoke_auth_code(self, code: str) -> None:
        """Mark *code* as used. Called once the code has been exchanged."""
        ...

    @abstractmethod
    def is_auth_code_revoked(self, code: str) -> bool:
        """Return ``True`` if *code* was already exchanged or revoked."""
        ...

    def exists_nonce(self, nonce: str, client_id: str) -> bool:
        """Return ``True`` if *nonce* was already used by *client_id*.

        Only consulted for OpenID Connect requests. The default never
        reports a replay; override it when codes are persisted with their
        nonce.
        """
        return False


class IdentityRepository(ABC):
    """Resolve end users for OpenID Connect id tokens."""

    @abstractmethod
    def get_user_entity_by_identifier(self, identifier: str) -> Optional[Identity]:
        """Return the user *identifier*, or ``None`` if it no longer exists."""
        ...
