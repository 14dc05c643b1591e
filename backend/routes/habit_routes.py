from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from auth import get_current_profile, require_admin
from schemas import Habit, HabitCategory, User
from services.calendar_utils import local_day, local_now
from services.state_service import (
    HabitSelectionError, StateService, ToggleInProgressError, get_state_service,
)

router = APIRouter(prefix="/api/v1/habits", tags=["Habits"])

class HabitCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = "Custom habit"
    points: int = Field(5, ge=1, le=50)
    category: HabitCategory = "health"

class HabitUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    points: Optional[int] = Field(None, ge=1, le=50)
    category: Optional[HabitCategory] = None

class ToggleRequest(BaseModel):
    date: str  # YYYY-MM-DD

class SelectionRequest(BaseModel):
    habit_ids: list[str]

@router.get("", response_model=list[Habit])
def list_habits(user: User = Depends(get_current_profile), state: StateService = Depends(get_state_service)):
    return state.snapshot().habits

@router.post("")
async def create_habit(body: HabitCreate, admin: User = Depends(require_admin),
                       state: StateService = Depends(get_state_service)):
    habit = await state.add_habit(body.name, body.points, body.category, body.description or "")
    return {"status": "success", "data": habit}

@router.put("/selection")
async def select_habits(body: SelectionRequest, user: User = Depends(get_current_profile),
                        state: StateService = Depends(get_state_service)):
    """Lock in the personal habit selection (once)."""
    try:
        await state.select_habits(user.id, body.habit_ids)
    except HabitSelectionError as e:
        raise HTTPException(status_code=409 if e.locked else 400, detail=str(e))
    return {"status": "success", "data": {"habit_ids": body.habit_ids}}

@router.post("/{habit_id}/toggle")
async def toggle_habit(habit_id: str, body: ToggleRequest, user: User = Depends(get_current_profile),
                       state: StateService = Depends(get_state_service), now: datetime = Depends(local_now)):
    try:
        result = await state.toggle(user.id, habit_id, body.date, today=local_day(now))
    except ToggleInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except KeyError:
        raise HTTPException(status_code=404, detail="Habit not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "success", "data": result}

@router.put("/{habit_id}")
async def update_habit(habit_id: str, body: HabitUpdate, admin: User = Depends(require_admin),
                       state: StateService = Depends(get_state_service)):
    snapshot = await state.current(force=True)
    current = next((h for h in snapshot.habits if h.id == habit_id), None)
    if current is None:
        raise HTTPException(status_code=404, detail="Habit not found")

    habit = current.model_copy(update=body.model_dump(exclude_unset=True, exclude_none=True))
    await state.mutate(state.store.update_habit, habit)
    return {"status": "success", "data": habit}

@router.delete("/{habit_id}")
async def delete_habit(habit_id: str, admin: User = Depends(require_admin),
                       state: StateService = Depends(get_state_service)):
    snapshot = await state.current(force=True)
    if not any(h.id == habit_id for h in snapshot.habits):
        raise HTTPException(status_code=404, detail="Habit not found")
    # Logs of the habit go first
    await state.mutate(state.store.remove_habit, habit_id)
    return {"status": "success"}
