import asyncio
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, Field, ValidationError

from auth import get_current_profile, require_admin, verify_token
from config import TIMELINE_TICK_SECONDS
from schemas import ChallengeSettings, TimelineSnapshot, User
from services.calendar_utils import local_now, parse_local_date
from services.state_service import StateService, get_state_service
from services.timeline_service import TimelineService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/challenge", tags=["Challenge"])

class SettingsUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    start_date: str
    end_date: str
    is_active: bool = True
    rules: str = ""
    stake_amount: float = Field(..., ge=0, allow_inf_nan=False)

@router.get("", response_model=ChallengeSettings)
def get_settings(user: User = Depends(get_current_profile), state: StateService = Depends(get_state_service)):
    return state.snapshot().settings

@router.put("")
async def update_settings(body: SettingsUpdate, admin: User = Depends(require_admin),
                          state: StateService = Depends(get_state_service)):
    try:
        settings = ChallengeSettings(**body.model_dump())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if parse_local_date(settings.end_date) < parse_local_date(settings.start_date):
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")

    await state.mutate(state.store.update_settings, settings)
    return {"status": "success", "data": settings}

@router.get("/timeline", response_model=TimelineSnapshot)
def get_timeline(user: User = Depends(get_current_profile), state: StateService = Depends(get_state_service),
                 now: datetime = Depends(local_now)):
    return TimelineService.snapshot(state.snapshot().settings, now)

@router.websocket("/timeline/live")
async def live_timeline(websocket: WebSocket, token: str = Query(""),
                        state: StateService = Depends(get_state_service)):
    """Push a fresh timeline snapshot every tick until the client goes away."""
    if verify_token(token) is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    pump = asyncio.create_task(_pump(websocket, state))
    try:
        # Client messages are ignored; receiving is how a disconnect shows up
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Live timeline client disconnected")
    finally:
        pump.cancel()

async def _pump(websocket: WebSocket, state: StateService):
    async def settings():
        return (await state.current()).settings

    ticker = TimelineService.ticker(settings, local_now, TIMELINE_TICK_SECONDS)
    try:
        async for snap in ticker:
            await websocket.send_json(snap.model_dump())
    finally:
        await ticker.aclose()
