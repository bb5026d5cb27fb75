"""Daily tracking API: summary, targets, dashboard, profile."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wellbalance.auth import get_current_user_id, require_user
from wellbalance.clock import Clock, get_clock
from wellbalance.db.engine import get_session
from wellbalance.db.user_tables import UserRow
from wellbalance.models import DailySummary, TargetsResult, UserTargets
from wellbalance.services.daily_log import get_daily_summary
from wellbalance.services.dashboard import Dashboard, build_dashboard
from wellbalance.services.targets import get_targets, save_targets

router = APIRouter(prefix="/api/v1", tags=["tracking"])


# ── Schemas ───────────────────────────────────────────────────────────────────

class TargetsUpdateRequest(BaseModel):
    daily_calories: int = Field(..., gt=0, le=20_000)
    protein_g: int = Field(..., ge=0, le=2_000)
    carbs_g: int = Field(..., ge=0, le=2_000)
    fat_g: int = Field(..., ge=0, le=2_000)


class ProfileUser(BaseModel):
    id: str
    email: str
    display_name: str
    initials: str


class ProfileResponse(BaseModel):
    user: ProfileUser
    targets: TargetsResult


def profile_display_name(user: UserRow) -> str:
    """Full name, else the email's local part, else a generic greeting."""
    if user.display_name and user.display_name.strip():
        return user.display_name.strip()
    local = (user.email or "").split("@")[0]
    return local or "WellBalance friend"


def profile_initials(user: UserRow) -> str:
    source = (user.display_name or "").strip() or user.email or "WB"
    words = [w for w in source.replace("@", " ").replace(".", " ").split() if w]
    return "".join(w[0] for w in words[:2]).upper() or "WB"


# ── Endpoints ─────────────────────────────────────────────────────────────────

@router.get("/daily-summary", response_model=DailySummary)
async def daily_summary(
    date: Optional[str] = Query(None, description="ISO date YYYY-MM-DD; defaults to today"),
    user_id: Optional[str] = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """Totals for one day; zeros when nothing was logged."""
    return await get_daily_summary(session, user_id, clock, date)


@router.get("/targets", response_model=TargetsResult)
async def targets(
    user_id: Optional[str] = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """The user's daily goals, or the defaults."""
    return await get_targets(session, user_id)


@router.put("/targets", response_model=TargetsResult)
async def update_targets(
    body: TargetsUpdateRequest,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    try:
        return await save_targets(session, user.id, UserTargets(**body.model_dump()))
    except SQLAlchemyError:
        raise HTTPException(500, "Failed to save targets")


@router.get("/dashboard", response_model=Dashboard)
async def dashboard(
    date: Optional[str] = Query(None),
    user_id: Optional[str] = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """Totals vs targets for a day plus the 7-day calorie trend."""
    return await build_dashboard(session, user_id, clock, date)


@router.get("/profile", response_model=ProfileResponse)
async def profile(
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    return ProfileResponse(
        user=ProfileUser(
            id=user.id,
            email=user.email,
            display_name=profile_display_name(user),
            initials=profile_initials(user),
        ),
        targets=await get_targets(session, user.id),
    )
