"""Shared test fixtures for warden.

Provides an RSA key pair, in-memory repositories, registered clients, fully
wired authorization/resource servers, and helpers for building protocol
requests. Fixtures are discovered by pytest automatically.
"""

from __future__ import annotations

import secrets
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Optional
from urllib.parse import urlencode

import pytest
from authlib.oauth2.rfc7636 import create_s256_code_challenge
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from warden import facade
from warden.entities import (
    AccessTokenRecord,
    AuthCodeRecord,
    Client,
    Identity,
    RefreshTokenRecord,
    ScopeEntity,
)
from warden.models import ProtocolRequest, ResourceConfig
from warden.output import reset_output
from warden.repositories import (
    AccessTokenRepository,
    AuthCodeRepository,
    ClientRepository,
    IdentityRepository,
    RefreshTokenRepository,
    ScopeRepository,
)

BASE_URL = "https://auth.example.com"
WEB_REDIRECT = "https://app.example.com/callback"
SPA_REDIRECT = "https://spa.example.com/cb"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches sys.stdout/sys.stderr at creation time; once a
    CliRunner invocation ends those streams are closed.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------


def _generate_key_pair() -> tuple[str, str]:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("ascii")
    public_pem = (
        key.public_key()
        .public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("ascii")
    )
    return private_pem, public_pem


@pytest.fixture(scope="session")
def key_pair() -> tuple[str, str]:
    """(private PEM, public PEM) shared by the whole session."""
    return _generate_key_pair()


@pytest.fixture(scope="session")
def other_key_pair() -> tuple[str, str]:
    """A second, unrelated key pair."""
    return _generate_key_pair()


@pytest.fixture
def private_pem(key_pair: tuple[str, str]) -> str:
    return key_pair[0]


@pytest.fixture
def public_pem(key_pair: tuple[str, str]) -> str:
    return key_pair[1]


@pytest.fixture
def key_files(tmp_path: Path, key_pair: tuple[str, str]) -> SimpleNamespace:
    """The key pair written to ``private.pem`` / ``public.pem`` under tmp_path."""
    private_path = tmp_path / "private.pem"
    public_path = tmp_path / "public.pem"
    private_path.write_text(key_pair[0])
    public_path.write_text(key_pair[1])
    return SimpleNamespace(private=private_path, public=public_path)


# ---------------------------------------------------------------------------
# In-memory repositories
# ---------------------------------------------------------------------------


class InMemoryClientRepository(ClientRepository):
    def __init__(self, clients: list[Client]) -> None:
        self.clients = {client.client_id: client for client in clients}

    def get_client_entity(self, client_id: str) -> Optional[Client]:
        return self.clients.get(client_id)


class InMemoryScopeRepository(ScopeRepository):
    def __init__(self, identifiers: list[str]) -> None:
        self.scopes = {i: ScopeEntity(identifier=i) for i in identifiers}
        self.finalized: list[tuple[list[str], str, str, Optional[str]]] = []

    def get_scope_entity_by_identifier(self, identifier: str) -> Optional[ScopeEntity]:
        return self.scopes.get(identifier)

    def finalize_scopes(
        self,
        scopes: list[str],
        grant_type: str,
        client: Client,
        user_id: Optional[str] = None,
    ) -> list[str]:
        self.finalized.append((scopes, grant_type, client.client_id, user_id))
        return scopes


class InMemoryAccessTokenRepository(AccessTokenRepository):
    def __init__(self) -> None:
        self.tokens: dict[str, AccessTokenRecord] = {}
        self.revoked: set[str] = set()

    def persist_new_access_token(self, token: AccessTokenRecord) -> None:
        self.tokens[token.token_id] = token

    def revoke_access_token(self, token_id: str) -> None:
        self.revoked.add(token_id)

    def is_access_token_revoked(self, token_id: str) -> bool:
        return token_id in self.revoked


class InMemoryRefreshTokenRepository(RefreshTokenRepository):
    def __init__(self) -> None:
        self.tokens: dict[str, RefreshTokenRecord] = {}
        self.revoked: set[str] = set()

    def persist_new_refresh_token(self, token: RefreshTokenRecord) -> None:
        self.tokens[token.token_id] = token

    def get_refresh_token(self, token_id: str) -> Optional[RefreshTokenRecord]:
        return self.tokens.get(token_id)

    def revoke_refresh_token(self, token_id: str) -> None:
        self.revoked.add(token_id)

    def is_refresh_token_revoked(self, token_id: str) -> bool:
        return token_id in self.revoked


class InMemoryAuthCodeRepository(AuthCodeRepository):
    def __init__(self) -> None:
        self.codes: dict[str, AuthCodeRecord] = {}
        self.revoked: set[str] = set()

    def persist_new_auth_code(self, code: AuthCodeRecord) -> None:
        self.codes[code.code] = code

    def get_auth_code(self, code: str) -> Optional[AuthCodeRecord]:
        return self.codes.get(code)

    def revoke_auth_code(self, code: str) -> None:
        self.revoked.add(code)

    def is_auth_code_revoked(self, code: str) -> bool:
        return code in self.revoked

    def exists_nonce(self, nonce: str, client_id: str) -> bool:
        return any(
            record.nonce == nonce and record.client_id == client_id
            for record in self.codes.values()
        )


class InMemoryIdentityRepository(IdentityRepository):
    def __init__(self, identities: list[Identity]) -> None:
        self.identities = {identity.identifier: identity for identity in identities}

    def get_user_entity_by_identifier(self, identifier: str) -> Optional[Identity]:
        return self.identities.get(identifier)


# ---------------------------------------------------------------------------
# Clients and repositories
# ---------------------------------------------------------------------------


@pytest.fixture
def web_client() -> Client:
    """A confidential client."""
    return Client(
        client_id="web-app",
        client_secret="s3cret",
        name="Web App",
        redirect_uris=[WEB_REDIRECT],
        scope="basic email openid profile",
    )


@pytest.fixture
def spa_client() -> Client:
    """A public client (no secret, PKCE required)."""
    return Client(client_id="spa", name="Single Page App", redirect_uris=[SPA_REDIRECT])


@pytest.fixture
def alice() -> Identity:
    return Identity(
        identifier="alice",
        claims={
            "first": "Alice",
            "last": "Liddell",
            "mail": "alice@example.com",
            "department": "research",
        },
    )


@pytest.fixture
def repos(web_client: Client, spa_client: Client, alice: Identity) -> SimpleNamespace:
    """One of each in-memory repository, pre-populated."""
    return SimpleNamespace(
        clients=InMemoryClientRepository([web_client, spa_client]),
        scopes=InMemoryScopeRepository(["basic", "email", "openid", "profile"]),
        access_tokens=InMemoryAccessTokenRepository(),
        refresh_tokens=InMemoryRefreshTokenRepository(),
        auth_codes=InMemoryAuthCodeRepository(),
        identities=InMemoryIdentityRepository([alice]),
    )


# ---------------------------------------------------------------------------
# Servers
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_config(repos: SimpleNamespace, private_pem: str):
    return facade.with_config(repos.clients, repos.access_tokens, repos.scopes, private_pem)


@pytest.fixture
def grant_config(repos: SimpleNamespace):
    return facade.with_authorization_grant_type(repos.auth_codes, repos.refresh_tokens)


@pytest.fixture
def authorization_server(auth_config, grant_config):
    return facade.initialize_authorization_server(auth_config, grant_config)


@pytest.fixture
def oidc_config(repos: SimpleNamespace):
    return facade.with_oidc(
        repos.identities,
        {
            "given_name": "first",
            "family_name": "last",
            "email": "mail",
            "department": "department",
            "name": lambda identity: f"{identity.claims['first']} {identity.claims['last']}",
        },
    )


@pytest.fixture
def oidc_server(auth_config, grant_config, oidc_config):
    return facade.initialize_authorization_server(auth_config, grant_config, oidc_config)


@pytest.fixture
def resource_server(repos: SimpleNamespace, public_pem: str):
    return facade.initialize_resource_server(
        ResourceConfig(access_token_repository=repos.access_tokens, public_key=public_pem)
    )


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def pkce_pair() -> tuple[str, str]:
    """(code_verifier, S256 code_challenge)."""
    verifier = secrets.token_urlsafe(48)
    return verifier, create_s256_code_challenge(verifier)


@pytest.fixture
def make_request() -> Callable[..., ProtocolRequest]:
    """Build a :class:`ProtocolRequest` the way the Starlette adapter would."""

    def _make(
        method: str = "GET",
        path: str = "/authorize",
        query: Optional[dict[str, str]] = None,
        body: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> ProtocolRequest:
        uri = f"{BASE_URL}{path}"
        if query:
            uri = f"{uri}?{urlencode(query)}"
        return ProtocolRequest(
            method=method,
            uri=uri,
            headers=headers or {},
            query=query or {},
            body=body or {},
        )

    return _make


@pytest.fixture
def issue_code(authorization_server, make_request, pkce_pair) -> Callable[..., str]:
    """Run the authorize step for ``web-app``/``alice`` and return the code."""
    from urllib.parse import parse_qs, urlsplit

    def _issue(server=None, scope: str = "basic email", **extra: str) -> str:
        query = {
            "response_type": "code",
            "client_id": "web-app",
            "redirect_uri": WEB_REDIRECT,
            "scope": scope,
            "state": "xyz",
            "code_challenge": pkce_pair[1],
            "code_challenge_method": "S256",
            **extra,
        }
        response = (server or authorization_server).complete_authorization_request(
            make_request(query=query), "alice"
        )
        return parse_qs(urlsplit(response.location).query)["code"][0]

    return _issue


@pytest.fixture
def token_request(make_request, pkce_pair) -> Callable[..., ProtocolRequest]:
    """Build a ``client_secret_post`` token request exchanging *code*."""

    def _build(code: str, **overrides: str) -> ProtocolRequest:
        body = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": WEB_REDIRECT,
            "client_id": "web-app",
            "client_secret": "s3cret",
            "code_verifier": pkce_pair[0],
            **overrides,
        }
        return make_request(method="POST", path="/token", body=body)

    return _build


# ---------------------------------------------------------------------------
# Config isolation and CLI
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path, clear WARDEN_CONFIG and chdir there."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("WARDEN_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
