"""
Bearer tokens for the Publicize API.

Tokens are HS256 JWTs whose `sub` claim is a user id. They are minted by the
`publicize token` CLI command; the API only verifies them.
"""

import os
from datetime import UTC, datetime, timedelta
from uuid import UUID

from jose import JWTError, jwt

SECRET_KEY = os.environ.get("PUBLICIZE_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"
TOKEN_TTL = timedelta(minutes=int(os.environ.get("PUBLICIZE_TOKEN_TTL_MINUTES", "1440")))
TOKEN_ISSUER = "publicize-connections"


def create_access_token(
    user_id: UUID | str,
    *,
    expires_delta: timedelta | None = None,
    now_utc: datetime | None = None,
) -> str:
    """
    Mint a token identifying `user_id`.

    `now_utc` pins the issue time for deterministic tests.
    """
    issued_at = now_utc if now_utc is not None else datetime.now(UTC)
    claims = {
        "sub": str(user_id),
        "iss": TOKEN_ISSUER,
        "iat": issued_at,
        "exp": issued_at + (expires_delta or TOKEN_TTL),
    }
    token: str = jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)
    return token


def read_token_subject(token: str) -> UUID | None:
    """Return the user id a valid token names, or None when it is unusable."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], issuer=TOKEN_ISSUER)
    except JWTError:
        return None

    subject = claims.get("sub")
    if not isinstance(subject, str):
        return None
    try:
        return UUID(subject)
    except ValueError:
        return None
