"""
Civic Issue Validation API

FastAPI backend for submitting civic issue reports.

Endpoints:
- POST /api/report - Submit a report (description, category, location, photo); rate limited per client
- GET /api/report/{issue_id} - Get a stored issue
- GET /health - Health check
"""

import json
import uuid
import asyncio
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any
from concurrent.futures import ThreadPoolExecutor

from fastapi import FastAPI, APIRouter, Depends, UploadFile, File, Form, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from loguru import logger
import uvicorn

# Import our modules
from issue_store import IssueStore
from logger import setup_logger
from models import Category, Issue, MIN_DESCRIPTION_LENGTH, MAX_DESCRIPTION_LENGTH
from pipeline import ValidationPipeline
from settings import Settings, settings
from uploads import ALLOWED_EXTENSIONS, ImageStore, save_upload, inspect_image, discard


VERSION = "1.0.0"

# Thread pool for the blocking validation pipeline
executor = ThreadPoolExecutor(max_workers=4)

router = APIRouter()


# =============================================================================
# REQUEST CHECKS
# =============================================================================

def check_description(description: Optional[str]) -> str:
    if description is None or not description.strip():
        raise HTTPException(status_code=400, detail="Description is required")
    if not MIN_DESCRIPTION_LENGTH <= len(description) <= MAX_DESCRIPTION_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Description must be between {MIN_DESCRIPTION_LENGTH} and {MAX_DESCRIPTION_LENGTH} characters"
        )
    return description


def check_issue_type(issue_type: Optional[str]) -> str:
    allowed = [c.value for c in Category]
    if issue_type not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"issueType must be one of: {', '.join(allowed)}"
        )
    return issue_type


def parse_location(location: Optional[str]) -> Optional[Dict[str, Any]]:
    if not location:
        return None
    try:
        parsed = json.loads(location)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="location must be a JSON object")
    if not isinstance(parsed, dict):
        raise HTTPException(status_code=400, detail="location must be a JSON object")
    return parsed


def check_image_extension(filename: str) -> None:
    ext = Path(filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"File type {ext or '(none)'} not allowed. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )


def enforce_report_limit(request: Request) -> None:
    """Per-client cap on report submissions (RATE_LIMIT, e.g. "50/hour")."""
    state = request.app.state
    client_id = request.client.host if request.client else "unknown"
    if not state.report_limiter.hit(state.report_limit, "report", client_id):
        logger.warning(f"Report rate limit exceeded for {client_id}")
        raise HTTPException(
            status_code=429,
            detail="Too many reports submitted, please try again later."
        )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/")
async def root(request: Request):
    return {
        "service": request.app.title,
        "version": VERSION,
        "endpoints": {
            "POST /api/report": "Submit a civic issue report with photo",
            "GET /api/report/{issue_id}": "Get a stored issue",
            "GET /health": "Health check"
        }
    }


@router.post("/api/report", status_code=201, dependencies=[Depends(enforce_report_limit)])
async def submit_report(
    request: Request,
    description: Optional[str] = Form(None),
    issue_type: Optional[str] = Form(None, alias="issueType"),
    location: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
):
    """Validate a report with the pipeline and store it as an issue."""
    state = request.app.state

    description = check_description(description)
    issue_type = check_issue_type(issue_type)
    location_data = parse_location(location)

    if image is None or not image.filename:
        raise HTTPException(status_code=400, detail="Image is required")
    check_image_extension(image.filename)

    content = await image.read()
    if len(content) > state.config.MAX_FILE_SIZE:
        raise HTTPException(
            status_code=413,
            detail=f"Image exceeds maximum size of {state.config.MAX_FILE_SIZE} bytes"
        )

    temp_path = save_upload(content, image.filename, state.config.UPLOAD_DIR)
    logger.info(f"Processing report with image: {temp_path}")

    try:
        try:
            image_format, (width, height) = inspect_image(temp_path)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        logger.debug(f"Image accepted: {image_format} {width}x{height}")

        loop = asyncio.get_event_loop()
        verdict = await loop.run_in_executor(
            executor,
            state.pipeline.validate,
            description,
            str(temp_path)
        )

        image_url = state.image_store.store(temp_path)
    finally:
        # The request owns the temp file, not the pipeline
        discard(temp_path)

    issue = Issue.from_verdict(
        issue_id=str(uuid.uuid4()),
        description=description,
        issue_type=issue_type,
        image_url=image_url,
        verdict=verdict,
        location=location_data,
    )
    state.issue_store.add(issue)
    logger.info(f"Issue {issue.id} stored with status {issue.status}")

    return {
        "message": "Report submitted successfully",
        "issue": {**issue.to_dict(), "ai_analysis": issue.ai_analysis()},
    }


@router.get("/api/report/{issue_id}")
async def get_report(issue_id: str, request: Request):
    """Get a stored issue."""
    issue = request.app.state.issue_store.get(issue_id)
    if issue is None:
        raise HTTPException(status_code=404, detail="Issue not found")
    return issue.to_dict()


@router.get("/health")
async def health(request: Request):
    state = request.app.state
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "ai_enabled": state.pipeline.ai_enabled,
        "issues_count": len(state.issue_store),
        "issues_by_status": state.issue_store.count_by_status(),
    }


# =============================================================================
# APP
# =============================================================================

def create_app(
    pipeline: Optional[ValidationPipeline] = None,
    issue_store: Optional[IssueStore] = None,
    image_store: Optional[ImageStore] = None,
    config: Settings = settings,
) -> FastAPI:
    setup_logger(config.LOG_LEVEL)

    app = FastAPI(
        title=config.APP_NAME,
        description="API for submitting and validating civic issue reports",
        version=VERSION
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)

    app.state.config = config
    app.state.pipeline = pipeline or ValidationPipeline.from_settings(config)
    app.state.issue_store = issue_store if issue_store is not None else IssueStore()
    app.state.image_store = image_store or ImageStore(config.IMAGE_DIR)
    app.state.report_limit = parse(config.RATE_LIMIT)
    app.state.report_limiter = MovingWindowRateLimiter(MemoryStorage())

    app.include_router(router)
    app.mount(
        app.state.image_store.url_prefix,
        StaticFiles(directory=app.state.image_store.directory),
        name="images"
    )

    logger.info(f"{config.APP_NAME} ready (AI vision enabled: {app.state.pipeline.ai_enabled})")
    return app


app = create_app()


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "api:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
