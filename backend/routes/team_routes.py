from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from auth import get_current_profile, require_admin
from schemas import Leaderboard, User
from services.calendar_utils import local_day, local_now
from services.completion_index import CompletionIndex
from services.leaderboard_service import LeaderboardService
from services.state_service import StateService, get_state_service

router = APIRouter(prefix="/api/v1/teams", tags=["Teams"])

class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = "#4f46e5"

class TeamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = None

class MoveRequest(BaseModel):
    direction: Literal["up", "down"]

class MemberAssignment(BaseModel):
    team_id: Optional[str] = None

@router.get("", response_model=Leaderboard)
def leaderboard(user: User = Depends(get_current_profile), state: StateService = Depends(get_state_service),
                now: datetime = Depends(local_now)):
    snapshot = state.snapshot()
    return LeaderboardService.build(snapshot, CompletionIndex(snapshot.logs), local_day(now))

@router.post("")
async def create_team(body: TeamCreate, admin: User = Depends(require_admin),
                      state: StateService = Depends(get_state_service)):
    team = await state.add_team(body.name, body.color)
    return {"status": "success", "data": team}

@router.put("/members/{user_id}")
async def assign_member(user_id: str, body: MemberAssignment, admin: User = Depends(require_admin),
                        state: StateService = Depends(get_state_service)):
    snapshot = await state.current(force=True)
    if not any(u.id == user_id for u in snapshot.users):
        raise HTTPException(status_code=404, detail="User not found")
    if body.team_id is not None and not any(t.id == body.team_id for t in snapshot.teams):
        raise HTTPException(status_code=404, detail="Team not found")

    await state.mutate(state.store.update_user_team, user_id, body.team_id)
    return {"status": "success"}

@router.put("/{team_id}")
async def update_team(team_id: str, body: TeamUpdate, admin: User = Depends(require_admin),
                      state: StateService = Depends(get_state_service)):
    snapshot = await state.current(force=True)
    current = next((t for t in snapshot.teams if t.id == team_id), None)
    if current is None:
        raise HTTPException(status_code=404, detail="Team not found")

    team = current.model_copy(update=body.model_dump(exclude_unset=True, exclude_none=True))
    await state.mutate(state.store.update_team, team)
    return {"status": "success", "data": team}

@router.post("/{team_id}/move")
async def move_team(team_id: str, body: MoveRequest, admin: User = Depends(require_admin),
                    state: StateService = Depends(get_state_service)):
    try:
        snapshot = await state.move_team(team_id, body.direction)
    except KeyError:
        raise HTTPException(status_code=404, detail="Team not found")
    return {"status": "success", "data": sorted(snapshot.teams, key=lambda t: t.order)}

@router.delete("/{team_id}")
async def delete_team(team_id: str, admin: User = Depends(require_admin),
                      state: StateService = Depends(get_state_service)):
    snapshot = await state.current(force=True)
    if not any(t.id == team_id for t in snapshot.teams):
        raise HTTPException(status_code=404, detail="Team not found")
    # Members are unassigned before the team row goes
    await state.mutate(state.store.remove_team, team_id)
    return {"status": "success"}
