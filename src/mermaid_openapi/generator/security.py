"""Security scheme definitions for normalized security tokens."""

from typing import Any, NamedTuple

OAUTH2_AUTHORIZATION_URL = "https://example.com/oauth/authorize"
OPENID_CONNECT_URL = "https://example.com/.well-known/openid-configuration"
API_KEY_HEADER_NAME = "X-API-Key"


class SecurityScheme(NamedTuple):
    name: str
    definition: dict[str, Any]
    scopes: list[str]


def resolve_security_scheme(token: str) -> SecurityScheme | None:
    """Resolve a token to its scheme, or None for unknown tokens."""
    if token == "bearerAuth":
        return SecurityScheme(token, {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}, [])
    if token == "basicAuth":
        return SecurityScheme(token, {"type": "http", "scheme": "basic"}, [])
    if token in ("apiKey_header", "apiKey_query"):
        location = token.split("_", 1)[1]
        return SecurityScheme(
            token, {"type": "apiKey", "name": API_KEY_HEADER_NAME, "in": location}, []
        )
    if token == "oauth2" or token.startswith("oauth2:"):
        scopes = [s for s in token[len("oauth2:"):].split(",") if s] if ":" in token else []
        flow: dict[str, Any] = {"authorizationUrl": OAUTH2_AUTHORIZATION_URL}
        if scopes:
            flow["scopes"] = {scope: f"{scope} permission" for scope in scopes}
        return SecurityScheme(token, {"type": "oauth2", "flows": {"implicit": flow}}, scopes)
    if token == "openIdConnect":
        return SecurityScheme(
            token, {"type": "openIdConnect", "openIdConnectUrl": OPENID_CONNECT_URL}, []
        )
    return None
