"""Normalize `Security:` note directives into security tokens.

Tokens are the scheme names used in the generated documents:
bearerAuth, basicAuth, apiKey_header, apiKey_query, oauth2, oauth2:<scopes>,
openIdConnect, or the directive text itself for custom schemes.
"""

import re

_API_KEY_LOCATION = re.compile(r"apiKey\s+in\s+(header|query)", re.IGNORECASE)
_OAUTH2_SCOPES = re.compile(r"oauth2\s*\[(.*?)\]", re.IGNORECASE)


def normalize_security(value: str) -> str:
    """Map one `Security:` value to its canonical token."""
    value = value.strip()
    lowered = value.lower()

    if lowered == "bearerauth":
        return "bearerAuth"
    if lowered == "basicauth":
        return "basicAuth"

    if lowered.startswith("apikey"):
        match = _API_KEY_LOCATION.search(value)
        location = match.group(1).lower() if match else "header"
        return f"apiKey_{location}"

    if lowered.startswith("oauth2"):
        match = _OAUTH2_SCOPES.search(value)
        if match:
            scopes = [s.strip() for s in match.group(1).split(",") if s.strip()]
            if scopes:
                return "oauth2:" + ",".join(scopes)
        return "oauth2"

    if lowered.startswith("openid"):
        return "openIdConnect"

    return value
