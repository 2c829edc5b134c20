"""
Study Planner – Backend API
Start with: uvicorn main:app --reload --port 5000
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import API_DEBUG, API_HOST, API_PORT, API_VERSION, FRONTEND_URL
from db import create_db_and_tables
from logging_config import log_requests, setup_logging
from models import utcnow
from routers import (
    analytics,
    auth,
    courses,
    events,
    notifications,
    planning,
    study_sessions,
    syllabus,
    tasks,
    users,
)

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info("Study Planner API %s ready", API_VERSION)
    yield


app = FastAPI(
    title="Study Planner API",
    description="Tasks, syllabus, calendar and Pomodoro study tracking for students",
    version=API_VERSION,
    lifespan=lifespan,
)

# Allow the frontend to call this API
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(log_requests)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


for module in (auth, users, tasks, syllabus, courses, events, study_sessions, analytics, notifications, planning):
    app.include_router(module.router)


@app.get("/health")
@app.get("/api/health")
def health():
    """Check that the API is running. Frontend can call this first."""
    return {"status": "ok", "message": "Study Planner API is running", "timestamp": utcnow()}


@app.get("/")
def root():
    """Root welcome."""
    return {"app": "Study Planner", "version": API_VERSION, "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=API_HOST, port=API_PORT, reload=API_DEBUG)
