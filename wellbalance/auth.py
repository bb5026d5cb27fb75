"""Email/password accounts with bearer tokens for WellBalance."""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
import uuid
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from wellbalance.db.engine import get_session
from wellbalance.db.user_tables import UserRow

# ---- Password hashing (PBKDF2-SHA256) ----

_ITERATIONS = 260_000
_SALT_LEN = 32


def hash_password(password: str) -> str:
    salt = uuid.uuid4().hex[:_SALT_LEN]
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _ITERATIONS)
    return f"{salt}${dk.hex()}"


def verify_password(password: str, stored: str) -> bool:
    salt, _, dk_hex = stored.partition("$")
    if not dk_hex:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _ITERATIONS)
    return hmac.compare_digest(dk.hex(), dk_hex)


# ---- Signed access tokens (HS256 JWT) ----

_JWT_ALGO = "HS256"
ACCESS_TTL = 3600 * 24 * 7  # 7 days


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64url_decode(s: str) -> bytes:
    return base64.urlsafe_b64decode(s + "=" * (-len(s) % 4))


def _signature(signing_input: bytes) -> bytes:
    return hmac.new(settings.JWT_SECRET.encode(), signing_input, hashlib.sha256).digest()


def sign_token(payload: dict) -> str:
    header = _b64url(json.dumps({"alg": _JWT_ALGO, "typ": "JWT"}).encode())
    body = _b64url(json.dumps(payload).encode())
    sig = _signature(f"{header}.{body}".encode())
    return f"{header}.{body}.{_b64url(sig)}"


def verify_token(token: str) -> Optional[dict]:
    """Payload of a well-signed, unexpired token; None for anything else."""
    parts = token.split(".")
    if len(parts) != 3:
        return None
    try:
        actual = _b64url_decode(parts[2])
        payload = json.loads(_b64url_decode(parts[1]))
    except (ValueError, TypeError):
        return None
    expected = _signature(f"{parts[0]}.{parts[1]}".encode())
    if not hmac.compare_digest(expected, actual):
        return None
    if not isinstance(payload, dict) or payload.get("exp", 0) < time.time():
        return None
    return payload


def create_access_token(user_id: str) -> dict:
    now = int(time.time())
    token = sign_token({
        "sub": user_id,
        "iat": now,
        "exp": now + ACCESS_TTL,
        "type": "access",
        "jti": uuid.uuid4().hex[:8],
    })
    return {"access_token": token, "token_type": "bearer", "expires_in": ACCESS_TTL}


# ---- FastAPI dependencies ----

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    session: AsyncSession = Depends(get_session),
) -> Optional[UserRow]:
    """The signed-in user, or None. Never raises for a bad token."""
    if not creds:
        return None
    payload = verify_token(creds.credentials)
    if not payload or payload.get("type") != "access":
        return None
    return await session.get(UserRow, payload["sub"])


async def get_current_user_id(user: Optional[UserRow] = Depends(get_current_user)) -> Optional[str]:
    return user.id if user else None


async def require_user(user: Optional[UserRow] = Depends(get_current_user)) -> UserRow:
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


# ---- Request models ----


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=8, max_length=128)
    display_name: Optional[str] = Field(None, max_length=100)


class LoginRequest(BaseModel):
    email: str
    password: str


async def find_user_by_email(session: AsyncSession, email: str) -> Optional[UserRow]:
    result = await session.execute(select(UserRow).where(UserRow.email == email.strip().lower()))
    return result.scalar_one_or_none()
