"""
User id extraction from token claims.

Tokens issued by this service carry the user id in ``userId``. Tokens from
earlier releases used other claim names; they are still accepted here, and
only here, until they have all expired.
"""

from typing import Any, Optional

USER_ID_CLAIM = "userId"

# Accepted claim names, in priority order
LEGACY_USER_ID_CLAIMS = (USER_ID_CLAIM, "user_id", "id", "_id", "sub")


def extract_user_id(payload: dict[str, Any]) -> Optional[str]:
    """Return the first non-empty user id claim, or None."""
    for name in LEGACY_USER_ID_CLAIMS:
        value = payload.get(name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None
