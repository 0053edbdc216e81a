from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Cookie, HTTPException

from storefront.mockapi.core.config import settings


def create_session_token(sub: str, role: str = "retailer") -> str:
    exp = datetime.now(timezone.utc) + timedelta(seconds=settings.SESSION_EXPIRES_SECONDS)
    payload = {"sub": sub, "role": role, "exp": exp, "type": "session"}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


def get_current_identity(session: Optional[str] = Cookie(default=None, alias=settings.SESSION_COOKIE)) -> dict:
    if not session:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = decode_token(session)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid session")
    if payload.get("type") != "session":
        raise HTTPException(status_code=401, detail="Invalid session")
    return payload  # contains sub (email), role
