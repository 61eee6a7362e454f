"""Test template drafting, LLM drafting and the template fallback."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

from submittal_review.agents.email_composer import (
    EmailComposerAgent,
    FailedDraft,
    GeneratedDraft,
    build_template_body,
    build_template_subject,
    clean_email_body,
    compose_with_template,
    infer_recipient_type,
)
from submittal_review.models.schemas import EmailItem, EmailRecipient, ProjectContext


def _item(item_id: str, *products: tuple[str, str | None, str], note: str = "") -> EmailItem:
    return EmailItem.model_validate(
        {
            "id": item_id,
            "articleName": "2.3 Standard Blade Louvers",
            "articleNumber": "2.3",
            "requirementId": item_id.split("-", 1)[-1],
            "requirement": f"Requirement {item_id}",
            "note": note,
            "products": [
                {
                    "productId": index,
                    "productName": f"Louver {index}",
                    "reviewId": f"{item_id}-{index}",
                    "status": bixby,
                    "userStatus": user,
                    "note": product_note,
                }
                for index, (bixby, user, product_note) in enumerate(products, start=1)
            ],
        }
    )


RECIPIENTS = [
    EmailRecipient(email="jane.smith@example.com", name="Jane Smith"),
    EmailRecipient(email="bob.johnson@example.com", name="Bob Johnson"),
]


def _mock_client(text: str | None = None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    if error is not None:
        client.models.generate_content.side_effect = error
    else:
        client.models.generate_content.return_value = SimpleNamespace(text=text)
    return client


def test_subject_non_compliant_with_count() -> None:
    items = [
        _item("2.3-2.3.C.3", ("NOT_COMPLIANT", "not_compliant", "")),
        _item("2.3-2.3.C.7", ("NOT_COMPLIANT", None, "")),
        _item("2.3-2.3.D.2", ("COMPLIANT", "not_compliant", "")),
        _item("2.2-2.2.B", ("COMPLIANT", "bookmarked", "ask architect")),
    ]

    subject = build_template_subject(items)

    assert subject == "Review Required: Non-Compliant Items in Submittal (4 requirements)"


def test_subject_single_item_has_no_count() -> None:
    subject = build_template_subject([_item("2.2-2.2.B", ("COMPLIANT", "bookmarked", ""))])
    assert subject == "Review Required: Bookmarked Items Need Clarification"


def test_subject_default_classification() -> None:
    items = [_item("2.2-2.2.C.1", ("UNCLEAR", None, "")), _item("2.2-2.2.C.2", ("UNCLEAR", None, ""))]
    assert build_template_subject(items) == "Review Required: Submittal Compliance Review (2 requirements)"


def test_template_body_structure() -> None:
    items = [
        _item("2.3-2.3.C.3", ("NOT_COMPLIANT", "not_compliant", "Non-drainable blade requirement"), note="Urgent"),
        _item("2.2-2.2.B", ("COMPLIANT", "bookmarked", "")),
    ]

    body = build_template_body(RECIPIENTS, items)

    assert body.startswith("Dear Jane Smith, Bob Johnson,\n\n")
    assert "we have identified 2 requirements that need to be addressed:" in body
    assert "1. Requirement 2.3-2.3.C.3\n   Article: 2.3 Standard Blade Louvers\n   Affected Products:" in body
    assert "   • Louver 1 - Non-drainable blade requirement" in body
    assert "   Additional Notes: Urgent" in body
    assert "2. Requirement 2.2-2.2.B" in body
    assert body.endswith("Best regards,\n[Your Name]\n[Your Title]\n[Your Company]")


def test_template_body_singular() -> None:
    body = build_template_body(RECIPIENTS[:1], [_item("2.2-2.2.B", ("COMPLIANT", "bookmarked", ""))])
    assert "we have identified 1 requirement that need" in body
    assert "Additional Notes" not in body


def test_infer_recipient_type() -> None:
    assert infer_recipient_type([EmailRecipient(email="pat@smith-architects.com", name="Pat")]) == "architect"
    assert infer_recipient_type([EmailRecipient(email="ops@louvers-sub.com", name="Ops")]) == "subcontractor"
    assert infer_recipient_type([EmailRecipient(email="gc@bigcontractor.com", name="GC")]) == "subcontractor"
    assert infer_recipient_type(RECIPIENTS) == "team member"
    assert infer_recipient_type([]) == "team member"


def test_clean_email_body_strips_markdown() -> None:
    raw = "## Summary\n\n**Important**: see `2.3.C.3` and *blade* notes for not_compliant items.\n\n\n\n\nThanks"

    cleaned = clean_email_body(raw)

    assert cleaned == "Summary\n\nImportant: see 2.3.C.3 and blade notes for not_compliant items.\n\nThanks"


def test_clean_email_body_drops_unbalanced_markers() -> None:
    assert clean_email_body("**Important: review\n### \n`x") == "Important: review\n\nx"
    assert clean_email_body("Check __blade depth\n* Item *one\n  * Sub item") == (
        "Check blade depth\n* Item one\n  * Sub item"
    )


def test_llm_draft_is_cleaned() -> None:
    payload = {"subject": "Review Required: Blade Louvers", "body": "Dear Jane,\n\n\n\n**Please** review.\n"}
    agent = EmailComposerAgent(client=_mock_client(json.dumps(payload)))

    result = agent.generate_with_llm(RECIPIENTS, [_item("2.2-2.2.B", ("COMPLIANT", "bookmarked", ""))])

    assert result == GeneratedDraft(subject="Review Required: Blade Louvers", body="Dear Jane,\n\nPlease review.")


def test_llm_prompt_carries_context() -> None:
    client = _mock_client(json.dumps({"subject": "S", "body": "B"}))
    agent = EmailComposerAgent(client=client, model="gemini-test")
    project = ProjectContext(project_title="Fixed Louvers", subcontractor="LOUVERS 'R US, INC.")
    items = [_item("2.3-2.3.C.3", ("NOT_COMPLIANT", None, "check blades"))]

    agent.generate_with_llm([EmailRecipient(email="a@firm-architect.com", name="Ann")], items, project)

    kwargs = client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-test"
    prompt = kwargs["contents"]
    assert "Project: Fixed Louvers" in prompt
    assert "project's architect" in prompt
    assert "automated review: NOT_COMPLIANT | reviewer: not reviewed | note: check blades" in prompt


def test_llm_network_error_is_failed_draft() -> None:
    agent = EmailComposerAgent(client=_mock_client(error=ConnectionError("boom")))
    result = agent.generate_with_llm(RECIPIENTS, [])
    assert isinstance(result, FailedDraft)
    assert "boom" in result.reason


def test_llm_missing_fields_is_failed_draft() -> None:
    agent = EmailComposerAgent(client=_mock_client(json.dumps({"subject": "Only subject"})))
    assert isinstance(agent.generate_with_llm(RECIPIENTS, []), FailedDraft)


def test_compose_falls_back_to_template_on_malformed_json() -> None:
    items = [
        _item("2.3-2.3.C.3", ("NOT_COMPLIANT", "not_compliant", "")),
        _item("2.2-2.2.B", ("COMPLIANT", "bookmarked", "")),
    ]
    agent = EmailComposerAgent(client=_mock_client("this is not json"))

    draft = agent.compose(RECIPIENTS, items)

    expected = compose_with_template(RECIPIENTS, items)
    assert draft.strategy == "template"
    assert draft.fallback_reason
    assert draft.subject == expected.subject
    assert draft.body == expected.body


def test_compose_uses_llm_when_available() -> None:
    agent = EmailComposerAgent(client=_mock_client(json.dumps({"subject": "S", "body": "Body"})))
    draft = agent.compose(RECIPIENTS, [_item("2.2-2.2.B", ("COMPLIANT", "bookmarked", ""))])
    assert draft.strategy == "llm"
    assert draft.body == "Body"


def test_compose_without_key_never_calls_llm() -> None:
    agent = EmailComposerAgent(api_key="")
    assert agent.llm_enabled is False
    draft = agent.compose(RECIPIENTS, [_item("2.2-2.2.B", ("COMPLIANT", "bookmarked", ""))])
    assert draft.strategy == "template"
    assert draft.fallback_reason is None
