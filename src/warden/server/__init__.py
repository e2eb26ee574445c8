"""OAuth2 servers built on Authlib.

- :mod:`~warden.server.authorization` -- the authorization server (authorize
  and token endpoints).
- :mod:`~warden.server.resource` -- bearer-token validation for protected
  resources.
- :mod:`~warden.server.grants`, :mod:`~warden.server.tokens` and
  :mod:`~warden.server.oidc` -- the grants, the token issuer and the OpenID
  Connect extension the authorization server is assembled from.
"""

from warden.server.authorization import AuthorizationServer
from warden.server.resource import ResourceServer
from warden.server.tokens import BearerTokenIssuer, IssuedToken

__all__ = ["AuthorizationServer", "BearerTokenIssuer", "IssuedToken", "ResourceServer"]
