"""warden -- an OAuth2 authorization server assembled from pluggable repositories.

warden wires caller-supplied repositories (clients, scopes, access tokens,
refresh tokens, authorization codes, identities) into an Authlib-based
authorization-code server with PKCE, refresh-token rotation and optional
OpenID Connect, and adapts Starlette requests and responses to it.

Typical wiring::

    from warden import facade
    from warden.adapters import adapt_response, handle_exception, read_request

    server = facade.initialize_authorization_server(
        facade.with_config(clients, access_tokens, scopes, "private.pem"),
        facade.with_authorization_grant_type(auth_codes, refresh_tokens),
    )

    async def token(request):
        try:
            result = server.respond_to_access_token_request(await read_request(request))
            return adapt_response(result)
        except Exception as exc:
            return handle_exception(exc, Response).response

Modules:
    facade: Server builders and initializers.
    grants: Grant-type factory.
    models: Pydantic configuration and exchange models.
    entities: Records exchanged with the repositories.
    repositories: Abstract repository interfaces.
    server: Authlib authorization and resource servers.
    adapters: Starlette request/response translation and error mapping.
    config: Settings file discovery and loading.
    app: Typer CLI entry point.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
