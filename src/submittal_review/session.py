"""Per-user email drafting session.

The session is an explicit object owned by the caller: recipients, selected
EmailItems, per-item notes, the current draft, and in-flight flags that stop
duplicate generate/send submissions for the same draft.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field

from submittal_review.agents.email_composer import EmailDraft
from submittal_review.models.schemas import EmailItem, EmailRecipient
from submittal_review.services.email_sender import validate_email_address


class DuplicateSubmissionError(RuntimeError):
    """The same operation is already in flight for this session."""


class InvalidRecipientError(ValueError):
    """A free-typed recipient address failed validation."""


@dataclass
class EmailSession:
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    recipients: list[EmailRecipient] = field(default_factory=list)
    items: list[EmailItem] = field(default_factory=list)
    notes: dict[str, str] = field(default_factory=dict)
    subject: str = ""
    body: str = ""
    generated: bool = False
    is_generating: bool = False
    is_sending: bool = False
    sent_to: list[str] = field(default_factory=list)

    # Recipients -------------------------------------------------------------

    def add_recipient(self, email: str, name: str | None = None) -> EmailRecipient:
        email = (email or "").strip()
        if not validate_email_address(email):
            raise InvalidRecipientError(f"Invalid email address: {email!r}")
        for existing in self.recipients:
            if existing.email.lower() == email.lower():
                return existing
        recipient = EmailRecipient(email=email, name=(name or "").strip() or email)
        self.recipients.append(recipient)
        return recipient

    def remove_recipient(self, email: str) -> None:
        email = (email or "").strip().lower()
        self.recipients = [r for r in self.recipients if r.email.lower() != email]

    # Items ------------------------------------------------------------------

    def has_item(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self.items)

    def add_item(self, item: EmailItem) -> None:
        if self.has_item(item.id):
            return
        self.items.append(item)
        if item.note and item.id not in self.notes:
            self.notes[item.id] = item.note

    def remove_item(self, item_id: str) -> None:
        self.items = [item for item in self.items if item.id != item_id]
        self.notes.pop(item_id, None)

    def set_note(self, item_id: str, note: str) -> None:
        self.notes[item_id] = note

    def items_with_notes(self) -> list[EmailItem]:
        return [
            item.model_copy(update={"note": self.notes.get(item.id) or item.note or ""})
            for item in self.items
        ]

    # Draft ------------------------------------------------------------------

    def apply_draft(self, draft: EmailDraft) -> None:
        self.subject = draft.subject
        self.body = draft.body
        self.generated = True

    def regenerate(self) -> None:
        self.subject = ""
        self.body = ""
        self.generated = False

    def can_send(self) -> bool:
        return not self.is_sending and bool(self.body.strip()) and bool(self.recipients)

    def mark_sent(self, recipients: list[str]) -> None:
        self.sent_to = list(recipients)

    def reset(self) -> None:
        self.recipients = []
        self.items = []
        self.notes = {}
        self.regenerate()
        self.sent_to = []

    # In-flight guards -------------------------------------------------------

    def begin_generation(self) -> None:
        if self.is_generating:
            raise DuplicateSubmissionError("Email generation already in progress")
        self.is_generating = True

    def end_generation(self) -> None:
        self.is_generating = False

    def begin_send(self) -> None:
        if self.is_sending:
            raise DuplicateSubmissionError("Email send already in progress")
        self.is_sending = True

    def end_send(self) -> None:
        self.is_sending = False


class SessionStore:
    """In-memory sessions keyed by id, one per reviewing user."""

    def __init__(self) -> None:
        self._sessions: dict[str, EmailSession] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str | None) -> EmailSession | None:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def get_or_create(self, session_id: str | None = None) -> EmailSession:
        with self._lock:
            if session_id and session_id in self._sessions:
                return self._sessions[session_id]
            session = EmailSession(session_id=session_id) if session_id else EmailSession()
            self._sessions[session.session_id] = session
            return session

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
