import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from auth import get_current_profile
from schemas import ProfileStats, User
from services.calendar_utils import local_now
from services.dashboard_service import DashboardService
from services.state_service import StateService, get_state_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/profiles", tags=["Profiles"])

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    avatar_url: Optional[str] = None

@router.get("/me", response_model=User)
def me(user: User = Depends(get_current_profile)):
    return user

@router.patch("/me")
async def update_me(body: ProfileUpdate, user: User = Depends(get_current_profile),
                    state: StateService = Depends(get_state_service)):
    if body.name is not None:
        await state.mutate(state.store.update_user_name, user.id, body.name)
    if body.avatar_url is not None:
        await state.mutate(state.store.update_user_avatar, user.id, body.avatar_url)
    updated = next((u for u in (await state.current()).users if u.id == user.id), user)
    return {"status": "success", "data": updated}

@router.delete("/me")
async def delete_me(user: User = Depends(get_current_profile), state: StateService = Depends(get_state_service)):
    await state.mutate(state.store.delete_account, user.id)
    logger.info(f"Deleted account {user.id}")
    return {"status": "success"}

@router.get("/{user_id}/stats", response_model=ProfileStats)
def profile_stats(user_id: str, user: User = Depends(get_current_profile),
                  state: StateService = Depends(get_state_service), now: datetime = Depends(local_now)):
    snapshot = state.snapshot()
    target = next((u for u in snapshot.users if u.id == user_id), None)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")
    return DashboardService.profile(snapshot, target, now)
