from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_profile
from schemas import Dashboard, User
from services.calendar_utils import local_now
from services.dashboard_service import DashboardService
from services.state_service import StateService, get_state_service

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])

@router.get("", response_model=Dashboard)
def dashboard(date: Optional[str] = None, user: User = Depends(get_current_profile),
              state: StateService = Depends(get_state_service), now: datetime = Depends(local_now)):
    """Everything the home screen shows, for today or a past `date`."""
    try:
        return DashboardService.build(state.view(user.id), user, now, date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
