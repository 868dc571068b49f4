"""
EduGovern Progress — Student Progress Analytics Engine
FastAPI backend entry point.
"""

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from progress.config import MARKS_API_URL, RANK_TIE_BREAK, SCHOOL_NAME, logger
from routes.progress import router as progress_router
from routes.cohort import router as cohort_router

# Comma-separated allowed origins, e.g. http://localhost:5173,https://admin.example.com
raw_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
ALLOWED_ORIGINS = [o.strip() for o in raw_origins.split(",") if o.strip()]

app = FastAPI(
    title="EduGovern Progress API",
    description=(
        "Student progress analytics — subject and timeline breakdowns, "
        "cohort rankings and side-by-side comparisons."
    ),
    version="1.0.0",
)

# CORS — allow the admin console dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route modules
app.include_router(progress_router, prefix="/api/progress", tags=["Progress"])
app.include_router(cohort_router, prefix="/api/cohort", tags=["Cohort"])

logger.info(f"Progress API ready (marks feed: {MARKS_API_URL}, tie-break: {RANK_TIE_BREAK})")


@app.get("/api/health")
async def health_check():
    return {
        "status": "ok",
        "school_name": SCHOOL_NAME,
    }


@app.get("/api/config")
async def get_config():
    """Return server configuration to the frontend."""
    return {
        "school_name": SCHOOL_NAME,
        "rank_tie_break": RANK_TIE_BREAK,
    }
