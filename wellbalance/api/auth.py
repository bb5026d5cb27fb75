"""Account API: /api/v1/auth/signup and /api/v1/auth/login."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wellbalance.auth import (
    LoginRequest,
    SignUpRequest,
    create_access_token,
    find_user_by_email,
    hash_password,
    verify_password,
)
from wellbalance.db.engine import get_session
from wellbalance.db.user_tables import UserRow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _user_payload(user: UserRow) -> dict:
    return {"id": user.id, "email": user.email, "display_name": user.display_name}


@router.post("/signup", status_code=201)
async def signup(req: SignUpRequest, session: AsyncSession = Depends(get_session)):
    """Create a new account and sign it in."""
    email = req.email.strip().lower()
    if await find_user_by_email(session, email):
        raise HTTPException(409, "Email already registered")

    user = UserRow(
        email=email,
        password_hash=hash_password(req.password),
        display_name=req.display_name,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(409, "Email already registered")
    await session.refresh(user)

    logger.info("User signed up: id=%s", user.id)
    return {"user": _user_payload(user), **create_access_token(user.id)}


@router.post("/login")
async def login(req: LoginRequest, session: AsyncSession = Depends(get_session)):
    user = await find_user_by_email(session, req.email)
    if not user or not verify_password(req.password, user.password_hash):
        raise HTTPException(401, "Invalid email or password")
    return {"user": _user_payload(user), **create_access_token(user.id)}
