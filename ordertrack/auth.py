# ordertrack/auth.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import Settings
from .records import Claims, Role


pwd = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(p: str) -> str:
    return pwd.hash(p)


def verify_password(p: str, h: str) -> bool:
    try:
        return pwd.verify(p, h)
    except (ValueError, TypeError):
        # unknown or corrupted hash format
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return pwd.hash("not-a-real-password")


def burn_verification(p: str) -> None:
    """Spend the same time as a real check when there is no account to check against."""
    verify_password(p, _dummy_hash())


def create_token(user_id: int, role: Role, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": str(user_id),
        "role": Role(role).value,
        "iat": int(now.timestamp()),
        "exp": exp,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(token: str, settings: Settings) -> Optional[Claims]:
    """Signature and expiry are checked by jose; any failure means no identity."""
    if not token:
        return None
    try:
        data = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
        return Claims(
            user_id=int(data["sub"]),
            role=Role(data["role"]),
            issued_at=datetime.fromtimestamp(int(data.get("iat", 0)), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(data["exp"]), tz=timezone.utc),
        )
    except (JWTError, KeyError, TypeError, ValueError):
        return None
