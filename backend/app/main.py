from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from app.config import settings
from app.logging import configure_logging
from app.api.errors import register_exception_handlers
from app.api.routes import (
    auth,
    invitations,
    teams,
    todos,
    work_sessions,
)
from app.db.database import init_supabase_service_client


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.supabase_url:
        await init_supabase_service_client()
    else:
        logger.warning("SUPABASE_URL is not set, requests needing Supabase will fail")

    logger.info("Application startup complete")
    yield
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/api/health")
async def health_check():
    return {"success": True, "data": {"status": "healthy", "service": "backend"}}


app.include_router(auth.router, prefix="/api/auth", tags=["authentication"])
app.include_router(teams.router, prefix="/api/teams", tags=["teams"])
app.include_router(invitations.router, prefix="/api/invitations", tags=["invitations"])
app.include_router(todos.router, prefix="/api/todos", tags=["todos"])
app.include_router(
    work_sessions.router, prefix="/api/work-sessions", tags=["work-sessions"]
)
