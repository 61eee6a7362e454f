"""Email Composer Agent - Drafts review-request emails for flagged requirements.

Two strategies produce the same {subject, body} draft:
1. Template - deterministic letter built from the selected items
2. LLM - Gemini writes the letter from a structured prompt

The LLM strategy reports a tagged result instead of raising. Any failure
(network, malformed JSON, missing fields) is replaced wholesale by the
template draft, so callers never see a partial draft.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Union

from google import genai
from google.genai import types

from submittal_review.models.schemas import (
    EmailItem,
    EmailRecipient,
    ProjectContext,
)

logger = logging.getLogger(__name__)


# =============================================================================
# EMAIL COMPOSER PROMPT
# =============================================================================

COMPOSE_EMAIL_PROMPT = """You are drafting a professional email on behalf of a construction project reviewer.
The reviewer has checked a product submittal against the project specification and flagged
requirements that need a response from the recipients.

## Project
{project_context}

## Recipients
{recipient_names}
The recipients are most likely the project's {recipient_type}. Match the tone to that audience.

## Flagged Requirements
{items_summary}

## Your Task
Write the email asking the recipients to review and respond to every flagged requirement.
- Address the recipients by name.
- Enumerate each requirement with its article and the affected products.
- Explain briefly why each product was flagged, using the automated and reviewer statuses and notes.
- Do not invent requirements, products or facts that are not listed above.
- Plain text only. No markdown, no bold, no headings, no backticks.
- Close with "Best regards," followed by the placeholders [Your Name], [Your Title], [Your Company].

Output JSON only with this schema:
{{
  "subject": "string",
  "body": "string"
}}
"""

SUBJECT_PREFIX = "Review Required: "
SUBJECT_NON_COMPLIANT = "Non-Compliant Items in Submittal"
SUBJECT_BOOKMARKED = "Bookmarked Items Need Clarification"
SUBJECT_DEFAULT = "Submittal Compliance Review"

TEMPLATE_INTRO = (
    "I hope this email finds you well. I am writing to bring to your attention several "
    "requirements that need review and clarification regarding our current project submission."
)

TEMPLATE_CLOSING = """These requirements have been flagged during our compliance review process. We would appreciate your prompt attention to these matters to ensure the project remains on schedule and meets all specified requirements.

Please review the attached documentation and provide your response at your earliest convenience. If you have any questions or need additional clarification on any of these items, please don't hesitate to reach out.

Thank you for your attention to this matter.

Best regards,
[Your Name]
[Your Title]
[Your Company]"""


# =============================================================================
# DRAFT RESULTS
# =============================================================================

@dataclass(frozen=True)
class GeneratedDraft:
    subject: str
    body: str


@dataclass(frozen=True)
class FailedDraft:
    reason: str


DraftResult = Union[GeneratedDraft, FailedDraft]


@dataclass(frozen=True)
class EmailDraft:
    """A complete draft ready for the composer."""
    subject: str
    body: str
    strategy: str  # "llm" or "template"
    fallback_reason: str | None = None


# =============================================================================
# TEMPLATE STRATEGY
# =============================================================================

def classify_subject(items: list[EmailItem]) -> str:
    if any(product.is_non_compliant for item in items for product in item.products):
        return SUBJECT_NON_COMPLIANT
    if any(product.is_bookmarked for item in items for product in item.products):
        return SUBJECT_BOOKMARKED
    return SUBJECT_DEFAULT


def build_template_subject(items: list[EmailItem]) -> str:
    subject = SUBJECT_PREFIX + classify_subject(items)
    if len(items) > 1:
        subject += f" ({len(items)} requirements)"
    return subject


def _format_template_item(index: int, item: EmailItem) -> str:
    lines = [
        f"{index}. {item.requirement}",
        f"   Article: {item.article_name}",
        "   Affected Products:",
    ]
    for product in item.products:
        note = f" - {product.note}" if product.note else ""
        lines.append(f"   • {product.product_name}{note}")
    if item.note:
        lines.append(f"   Additional Notes: {item.note}")
    return "\n".join(lines)


def build_template_body(recipients: list[EmailRecipient], items: list[EmailItem]) -> str:
    names = ", ".join(recipient.name or recipient.email for recipient in recipients)
    plural = "" if len(items) == 1 else "s"
    enumerated = "\n\n".join(_format_template_item(i, item) for i, item in enumerate(items, start=1))

    return (
        f"Dear {names},\n\n"
        f"{TEMPLATE_INTRO}\n\n"
        f"After careful review of the specifications and submitted materials, we have identified "
        f"{len(items)} requirement{plural} that need to be addressed:\n\n"
        f"{enumerated}\n\n"
        f"{TEMPLATE_CLOSING}"
    )


def compose_with_template(recipients: list[EmailRecipient], items: list[EmailItem]) -> GeneratedDraft:
    return GeneratedDraft(
        subject=build_template_subject(items),
        body=build_template_body(recipients, items),
    )


# =============================================================================
# LLM HELPERS
# =============================================================================

def infer_recipient_type(recipients: list[EmailRecipient]) -> str:
    """Guess the audience from email addresses; only steers tone."""
    emails = [recipient.email.lower() for recipient in recipients]
    if any("architect" in email for email in emails):
        return "architect"
    if any("sub" in email or "contractor" in email for email in emails):
        return "subcontractor"
    return "team member"


def _strip_stray_asterisks(line: str) -> str:
    bullet = re.match(r"[ \t]*\*[ \t]+", line)
    head = bullet.group(0) if bullet else ""
    return head + line[len(head):].replace("*", "")


def clean_email_body(text: str) -> str:
    """Strip markdown markers and collapse runs of blank lines."""
    cleaned = text.replace("\r\n", "\n")
    cleaned = re.sub(r"(?m)^[ \t]*#{1,6}[ \t]*", "", cleaned)
    cleaned = re.sub(r"\*\*(.+?)\*\*", r"\1", cleaned, flags=re.DOTALL)
    cleaned = re.sub(r"__(.+?)__", r"\1", cleaned, flags=re.DOTALL)
    cleaned = re.sub(r"(?<![\w*])\*(?!\s)([^*\n]+?)\*(?![\w*])", r"\1", cleaned)
    cleaned = re.sub(r"(?<!\w)_(?!\s)([^_\n]+?)_(?!\w)", r"\1", cleaned)
    # Unbalanced leftovers; a leading "* " bullet survives.
    cleaned = re.sub(r"\*{2,}|_{2,}", "", cleaned)
    cleaned = "\n".join(_strip_stray_asterisks(line) for line in cleaned.split("\n"))
    cleaned = cleaned.replace("`", "")
    cleaned = re.sub(r"\n[ \t]*(?:\n[ \t]*){2,}", "\n\n", cleaned)
    return cleaned.strip()


def _format_project_context(project: ProjectContext | None) -> str:
    if project is None:
        return "No project context provided."
    lines = []
    if project.project_title:
        lines.append(f"Project: {project.project_title}")
    if project.spec_description:
        lines.append(f"Specification: {project.spec_description}")
    if project.submittal_description:
        lines.append(f"Submittal: {project.submittal_description}")
    if project.subcontractor:
        lines.append(f"Subcontractor: {project.subcontractor}")
    return "\n".join(lines) if lines else "No project context provided."


def _format_items_summary(items: list[EmailItem]) -> str:
    blocks = []
    for index, item in enumerate(items, start=1):
        lines = [f"{index}. {item.requirement} (Article {item.article_number}: {item.article_name})"]
        for product in item.products:
            bixby = product.status.value if product.status else "UNKNOWN"
            user = product.user_status.value if product.user_status else "not reviewed"
            line = f"   - {product.product_name} | automated review: {bixby} | reviewer: {user}"
            if product.note:
                line += f" | note: {product.note}"
            lines.append(line)
        if item.note:
            lines.append(f"   Reviewer note: {item.note}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _parse_json(text: str) -> object:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        cleaned = "\n".join(lines[1:-1]).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", cleaned, flags=re.DOTALL)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                return {}
    return {}


def _coerce_text(value) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


# =============================================================================
# EMAIL COMPOSER AGENT
# =============================================================================

@dataclass
class EmailComposerAgent:
    """Drafts review-request emails, preferring the LLM when a key is configured."""

    api_key: str = ""
    model: str = "gemini-2.5-flash"
    temperature: float = 0.3
    client: genai.Client | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.client is None and self.api_key:
            self.client = genai.Client(api_key=self.api_key)

    @property
    def llm_enabled(self) -> bool:
        return self.client is not None

    def build_prompt(
        self,
        recipients: list[EmailRecipient],
        items: list[EmailItem],
        project: ProjectContext | None = None,
    ) -> str:
        names = ", ".join(recipient.name or recipient.email for recipient in recipients) or "Unspecified"
        return COMPOSE_EMAIL_PROMPT.format(
            project_context=_format_project_context(project),
            recipient_names=names,
            recipient_type=infer_recipient_type(recipients),
            items_summary=_format_items_summary(items),
        )

    def generate_with_llm(
        self,
        recipients: list[EmailRecipient],
        items: list[EmailItem],
        project: ProjectContext | None = None,
    ) -> DraftResult:
        """Ask the LLM for a draft. Never raises; failures come back as FailedDraft."""
        if self.client is None:
            return FailedDraft(reason="LLM client not configured")

        prompt = self.build_prompt(recipients, items, project)
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    response_mime_type="application/json",
                ),
            )
            result = _parse_json(response.text or "")
        except Exception as exc:
            logger.warning(f"LLM email generation failed: {exc}")
            return FailedDraft(reason=f"LLM request failed: {exc}")

        if not isinstance(result, dict):
            return FailedDraft(reason="LLM response was not a JSON object")

        subject = _coerce_text(result.get("subject"))
        body = _coerce_text(result.get("body"))
        if not subject or not body:
            return FailedDraft(reason="LLM response missing subject or body")

        body = clean_email_body(body)
        if not body:
            return FailedDraft(reason="LLM body was empty after cleanup")

        return GeneratedDraft(subject=subject, body=body)

    def compose(
        self,
        recipients: list[EmailRecipient],
        items: list[EmailItem],
        project: ProjectContext | None = None,
    ) -> EmailDraft:
        """Produce a complete draft, substituting the template when the LLM fails."""
        if not self.llm_enabled:
            draft = compose_with_template(recipients, items)
            return EmailDraft(subject=draft.subject, body=draft.body, strategy="template")

        result = self.generate_with_llm(recipients, items, project)
        if isinstance(result, GeneratedDraft):
            logger.info(
                "LLM composed email",
                extra={"items": len(items), "recipients": len(recipients)},
            )
            return EmailDraft(subject=result.subject, body=result.body, strategy="llm")

        logger.warning(f"Falling back to template email: {result.reason}")
        draft = compose_with_template(recipients, items)
        return EmailDraft(
            subject=draft.subject,
            body=draft.body,
            strategy="template",
            fallback_reason=result.reason,
        )
