"""Session tokens and password hashing.

Tokens are HS256 JWTs signed with the process-wide ``JWT_SECRET``; they carry
the user's id in ``sub`` plus name and email so the auth gate never touches
the store. Verification is stateless.
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import BaseModel

from canteen.backend.config import JWT_ALGORITHM, JWT_SECRET, SESSION_TTL_SECONDS


class InvalidToken(Exception):
    pass


class UserClaims(BaseModel):
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None


def hash_password(password: str, salt: Optional[str] = None) -> str:
    if salt is None:
        salt = secrets.token_hex(8)
    h = hashlib.sha256((salt + password).encode("utf-8")).hexdigest()
    return f"{salt}${h}"


def verify_password(password: str, stored: Optional[str]) -> bool:
    # any malformed input is a plain mismatch
    if not isinstance(password, str) or not isinstance(stored, str):
        return False
    try:
        salt, _ = stored.split("$", 1)
    except ValueError:
        return False
    return hmac.compare_digest(hash_password(password, salt), stored)


def issue_token(user, ttl_seconds: Optional[int] = SESSION_TTL_SECONDS) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "name": getattr(user, "name", None),
        "email": getattr(user, "email", None),
        "iat": int(now.timestamp()),
    }
    if ttl_seconds:
        payload["exp"] = int((now + timedelta(seconds=ttl_seconds)).timestamp())
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: Optional[str]) -> UserClaims:
    if not token:
        raise InvalidToken("No token provided")
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise InvalidToken("Token expired") from exc
    except jwt.PyJWTError as exc:
        raise InvalidToken("Invalid token") from exc

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidToken("Invalid token payload")
    return UserClaims(
        user_id=user_id, name=payload.get("name"), email=payload.get("email")
    )
