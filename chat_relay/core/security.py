"""Static shared-secret check for inbound requests."""

import hmac

API_KEY_HEADER = "X-API-Key"


def api_key_matches(expected: str, provided: str | None) -> bool:
    """True when no secret is configured or the header matches it exactly."""
    if not expected:
        return True
    if provided is None:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())
