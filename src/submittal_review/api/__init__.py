"""
FastAPI application factory and API package.

Run with:
    uvicorn submittal_review.api:app --reload --port 8000

Or via the CLI:
    submittal-review serve
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from submittal_review.agents.email_composer import EmailComposerAgent
from submittal_review.api.routes import email_router, health_router, review_router, session_router
from submittal_review.config import Settings, settings as default_settings
from submittal_review.models.schemas import ReviewProject
from submittal_review.services.email_sender import build_email_sender
from submittal_review.session import SessionStore
from submittal_review.tools.project_loader import load_review_project

logger = logging.getLogger(__name__)


def _load_project(settings: Settings) -> ReviewProject:
    try:
        project = load_review_project(settings.project_data_path)
    except FileNotFoundError:
        logger.warning(f"Project data not found at {settings.project_data_path}; starting empty")
        return ReviewProject()
    logger.info(f"Loaded project '{project.project.project_title}' with {len(project.articles)} articles")
    return project


def create_app(
    settings: Settings | None = None,
    *,
    project: ReviewProject | None = None,
    composer: EmailComposerAgent | None = None,
    sender=None,
) -> FastAPI:
    """Application factory: create and configure the FastAPI instance."""
    settings = settings or default_settings

    application = FastAPI(
        title="Submittal Review API",
        description="Compliance review aggregation and review-request email drafting",
        version="0.1.0",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.state.settings = settings
    application.state.project = project if project is not None else _load_project(settings)
    application.state.composer = composer or EmailComposerAgent(
        api_key=settings.gemini_api_key,
        model=settings.composer_model,
        temperature=settings.llm_temperature,
    )
    application.state.sender = sender or build_email_sender(settings)
    application.state.sessions = SessionStore()

    @application.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request body"})

    application.include_router(health_router, tags=["Health"])
    application.include_router(review_router, prefix="/api/review", tags=["Review"])
    application.include_router(email_router, prefix="/api", tags=["Email"])
    application.include_router(session_router, prefix="/api/sessions", tags=["Sessions"])

    logger.info(
        "Submittal review API configured",
        extra={"llm_enabled": application.state.composer.llm_enabled, "send_email": settings.send_email},
    )
    return application


# Module-level instance for `uvicorn submittal_review.api:app`
app = create_app()
