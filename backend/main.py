import logging
import os
import sys
from contextlib import asynccontextmanager

# Ensure this directory is in the path for Vercel and other runners
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.append(current_dir)

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import LOG_LEVEL
from services.data_store import StoreError

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

from routes.auth_routes import router as auth_router
from routes.challenge_routes import router as challenge_router
from routes.dashboard_routes import router as dashboard_router
from routes.habit_routes import router as habit_router
from routes.profile_routes import router as profile_router
from routes.team_routes import router as team_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    from supabase_client import is_supabase_configured

    if not is_supabase_configured():
        from database import init_db
        init_db()
    yield


app = FastAPI(title="HabitSync", lifespan=lifespan)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    """Backend hiccups are reported, not fatal; the client can retry."""
    logger.error(f"{request.method} {request.url.path} failed against the data store: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": "Could not reach the data store. Your change was not saved; please try again."},
    )


@app.get("/api/v1/health-check")
async def health():
    return {"status": "ok", "message": "Backend is alive!"}

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(habit_router)
app.include_router(challenge_router)
app.include_router(team_router)
app.include_router(profile_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
