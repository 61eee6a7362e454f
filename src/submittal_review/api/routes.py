"""
API routes: thin HTTP layer over aggregation, drafting and sending.

Routes:
  GET    /health                                → API health check
  GET    /api/review/summary                    → Global and per-article review counts
  GET    /api/review/email-items                → Mailable candidates grouped by article
  POST   /api/generate-email                    → Draft subject + body for items
  POST   /api/send-email                        → Validate and send a composed email
  POST   /api/sessions                          → Start a drafting session
  GET    /api/sessions/{session_id}             → Session state
  POST   /api/sessions/{session_id}/recipients  → Add a recipient
  DELETE /api/sessions/{session_id}/recipients/{email}
  POST   /api/sessions/{session_id}/items       → Add a candidate item by id
  DELETE /api/sessions/{session_id}/items/{item_id}
  PUT    /api/sessions/{session_id}/items/{item_id}/note
  POST   /api/sessions/{session_id}/generate    → Draft from the session's selection
  POST   /api/sessions/{session_id}/send        → Send the session's draft
  POST   /api/sessions/{session_id}/reset       → Clear the session
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import Field

from submittal_review.agents.email_composer import EmailDraft
from submittal_review.models.schemas import (
    CamelModel,
    EmailItem,
    EmailRecipient,
    StatusCounts,
    ArticleSummary,
)
from submittal_review.services.email_sender import EmailValidationError
from submittal_review.session import (
    DuplicateSubmissionError,
    EmailSession,
    InvalidRecipientError,
)
from submittal_review.tools.email_items import (
    collect_email_candidates,
    derive_email_items,
    parse_filters,
)
from submittal_review.tools.status_counts import compute_status_counts, summarize_articles

logger = logging.getLogger(__name__)

# ── Routers ──────────────────────────────────────────────
health_router = APIRouter()
review_router = APIRouter()
email_router = APIRouter()
session_router = APIRouter()


# ── Request / response schemas ───────────────────────────
class GenerateEmailRequest(CamelModel):
    recipients: list[EmailRecipient] = Field(default_factory=list)
    items: list[EmailItem] = Field(default_factory=list)


class SendEmailRequest(CamelModel):
    recipients: list[EmailRecipient] = Field(default_factory=list)
    email_body: str = Field(default="", alias="emailBody")
    subject: str = ""


class RecipientRequest(CamelModel):
    email: str
    name: str = ""


class AddItemRequest(CamelModel):
    item_id: str = Field(alias="itemId")


class NoteRequest(CamelModel):
    note: str = ""


class SummaryResponse(CamelModel):
    counts: StatusCounts
    articles: list[ArticleSummary]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _iso(ts: datetime | None) -> str:
    ts = ts or datetime.now(timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ── Shared operations ────────────────────────────────────

async def _draft_email(request: Request, recipients: list[EmailRecipient], items: list[EmailItem]) -> EmailDraft:
    state = request.app.state
    delay = state.settings.generate_delay_seconds
    if delay > 0:
        await asyncio.sleep(delay)
    return await asyncio.to_thread(state.composer.compose, recipients, items, state.project.project)


async def _send_email(
    request: Request,
    recipients: list[EmailRecipient],
    subject: str,
    body: str,
) -> dict[str, Any]:
    """Send through the configured transport; raises EmailValidationError on bad input."""
    result = await request.app.state.sender.send(subject=subject, body=body, recipients=recipients)
    if not result.success:
        raise RuntimeError(result.error or "Email transport reported failure")
    return {
        "success": True,
        "message": "Email sent successfully",
        "sentAt": _iso(result.sent_at),
        "recipients": result.recipients,
    }


def _session_or_404(request: Request, session_id: str) -> EmailSession:
    session = request.app.state.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session


def _session_payload(session: EmailSession) -> dict[str, Any]:
    return {
        "sessionId": session.session_id,
        "recipients": [r.model_dump(by_alias=True) for r in session.recipients],
        "items": [item.model_dump(by_alias=True, mode="json") for item in session.items_with_notes()],
        "subject": session.subject,
        "emailBody": session.body,
        "emailGenerated": session.generated,
        "isGenerating": session.is_generating,
        "isSending": session.is_sending,
        "canSend": session.can_send(),
        "sentTo": session.sent_to,
    }


# ── Health ───────────────────────────────────────────────

@health_router.get("/health")
async def health_check(request: Request):
    return {
        "status": "ok",
        "llm_enabled": request.app.state.composer.llm_enabled,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Review aggregates ────────────────────────────────────

@review_router.get("/summary", response_model=SummaryResponse)
async def review_summary(request: Request):
    articles = request.app.state.project.articles
    return SummaryResponse(
        counts=compute_status_counts(articles),
        articles=summarize_articles(articles),
    )


@review_router.get("/email-items")
async def email_item_candidates(
    request: Request,
    filters: list[str] | None = Query(default=None, alias="filter"),
    q: str | None = None,
):
    groups = collect_email_candidates(request.app.state.project, parse_filters(filters), q)
    return {
        "groups": [
            {
                "articleNumber": article_number,
                "items": [item.model_dump(by_alias=True, mode="json") for item in items],
            }
            for article_number, items in groups
        ],
        "total": sum(len(items) for _, items in groups),
    }


# ── Stateless email endpoints ────────────────────────────

@email_router.post("/generate-email")
async def generate_email(payload: GenerateEmailRequest, request: Request):
    try:
        draft = await _draft_email(request, payload.recipients, payload.items)
    except Exception:
        logger.exception("Error generating email")
        return _error(500, "Failed to generate email")

    return {
        "success": True,
        "emailBody": draft.body,
        "subject": draft.subject,
        "strategy": draft.strategy,
    }


@email_router.post("/send-email")
async def send_email(payload: SendEmailRequest, request: Request):
    try:
        return await _send_email(request, payload.recipients, payload.subject, payload.email_body)
    except EmailValidationError as exc:
        return _error(400, str(exc))
    except Exception:
        logger.exception("Error sending email")
        return _error(500, "Failed to send email")


# ── Sessions ─────────────────────────────────────────────

@session_router.post("")
async def create_session(request: Request):
    session = request.app.state.sessions.get_or_create()
    logger.info(f"Created email session {session.session_id}")
    return _session_payload(session)


@session_router.get("/{session_id}")
async def get_session(session_id: str, request: Request):
    return _session_payload(_session_or_404(request, session_id))


@session_router.post("/{session_id}/recipients")
async def add_recipient(session_id: str, payload: RecipientRequest, request: Request):
    session = _session_or_404(request, session_id)
    try:
        session.add_recipient(payload.email, payload.name)
    except InvalidRecipientError as exc:
        return _error(400, str(exc))
    return _session_payload(session)


@session_router.delete("/{session_id}/recipients/{email}")
async def remove_recipient(session_id: str, email: str, request: Request):
    session = _session_or_404(request, session_id)
    session.remove_recipient(email)
    return _session_payload(session)


@session_router.post("/{session_id}/items")
async def add_item(session_id: str, payload: AddItemRequest, request: Request):
    session = _session_or_404(request, session_id)
    project = request.app.state.project
    candidates = {item.id: item for item in derive_email_items(project.articles, project.product_names())}
    item = candidates.get(payload.item_id)
    if item is None:
        return _error(404, f"No open review item {payload.item_id}")
    session.add_item(item)
    return _session_payload(session)


@session_router.delete("/{session_id}/items/{item_id}")
async def remove_item(session_id: str, item_id: str, request: Request):
    session = _session_or_404(request, session_id)
    session.remove_item(item_id)
    return _session_payload(session)


@session_router.put("/{session_id}/items/{item_id}/note")
async def set_item_note(session_id: str, item_id: str, payload: NoteRequest, request: Request):
    session = _session_or_404(request, session_id)
    if not session.has_item(item_id):
        return _error(404, f"Item {item_id} is not in this session")
    session.set_note(item_id, payload.note)
    return _session_payload(session)


@session_router.post("/{session_id}/generate")
async def generate_session_email(session_id: str, request: Request):
    session = _session_or_404(request, session_id)
    if not session.items:
        return _error(400, "No items selected")

    try:
        session.begin_generation()
    except DuplicateSubmissionError as exc:
        return _error(409, str(exc))

    try:
        draft = await _draft_email(request, session.recipients, session.items_with_notes())
    except Exception:
        logger.exception(f"Error generating email for session {session_id}")
        return _error(500, "Failed to generate email")
    finally:
        session.end_generation()

    session.apply_draft(draft)
    payload = _session_payload(session)
    payload["strategy"] = draft.strategy
    return payload


@session_router.post("/{session_id}/send")
async def send_session_email(session_id: str, request: Request):
    session = _session_or_404(request, session_id)
    try:
        session.begin_send()
    except DuplicateSubmissionError as exc:
        return _error(409, str(exc))

    try:
        result = await _send_email(request, session.recipients, session.subject, session.body)
    except EmailValidationError as exc:
        return _error(400, str(exc))
    except Exception:
        logger.exception(f"Error sending email for session {session_id}")
        return _error(500, "Failed to send email")
    finally:
        session.end_send()

    session.mark_sent(result["recipients"])
    return result


@session_router.post("/{session_id}/reset")
async def reset_session(session_id: str, request: Request):
    session = _session_or_404(request, session_id)
    session.reset()
    return _session_payload(session)
