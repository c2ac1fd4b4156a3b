"""
Username identity for the slip journal
No passwords, no tokens: the caller names itself in the X-Username header
and every slip is scoped to that name
"""

import re

from fastapi import Security, HTTPException, status
from fastapi.security import APIKeyHeader

# Username header
USERNAME_HEADER = APIKeyHeader(name="X-Username", auto_error=False)

_USERNAME_PATTERN = re.compile(r"^[a-z0-9_.\-]{1,64}$")


def normalize_username(raw: str) -> str:
    """Lower-case and trim; usernames are case-insensitive everywhere."""
    return raw.strip().lower()


async def get_username(username: str = Security(USERNAME_HEADER)) -> str:
    """
    Resolve the caller's username

    Usage in FastAPI routes:
        @app.get("/api/slips")
        async def list_slips(user: str = Depends(get_username)):
            return {"user": user}
    """
    if not username or not username.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Username required. Include 'X-Username' header.",
        )

    name = normalize_username(username)
    if not _USERNAME_PATTERN.match(name):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username may contain letters, digits, '_', '.' and '-' (max 64)",
        )

    return name
