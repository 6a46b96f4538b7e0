"""API key check shared by every /habits route."""

import secrets

from fastapi import HTTPException, Header

from app.config import settings


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    """Accept the key from X-API-Key or Authorization: Bearer.

    No-op while HABITS_API_KEY is unset.
    """
    expected = settings.habits_api_key
    if expected is None:
        return ""

    supplied = x_api_key if x_api_key is not None else _bearer_token(authorization)
    if supplied is None or not secrets.compare_digest(supplied.encode(), expected.encode()):
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return supplied
