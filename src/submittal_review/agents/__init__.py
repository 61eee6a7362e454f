"""Email drafting agents."""

from submittal_review.agents.email_composer import (
    EmailComposerAgent,
    EmailDraft,
    FailedDraft,
    GeneratedDraft,
)

__all__ = [
    "EmailComposerAgent",
    "EmailDraft",
    "FailedDraft",
    "GeneratedDraft",
]
