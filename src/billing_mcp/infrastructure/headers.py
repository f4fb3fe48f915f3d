from __future__ import annotations

from uuid import uuid4


def make_headers(access_token: str) -> dict[str, str]:
    """Return the headers sent with every Zoho Books API request.

    X-Request-Id is freshly generated on every call so upstream errors can be
    matched against our logs.
    """
    return {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "Authorization": f"Zoho-oauthtoken {access_token}",
        "X-Request-Id": str(uuid4()),
    }
