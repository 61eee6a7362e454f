"""Main entry point for the Submittal Review application."""

import argparse
import logging
import sys

import structlog

from submittal_review.config import settings

logger = structlog.get_logger()


def _resolve_log_level(level_name: str) -> int:
    return getattr(logging, level_name.upper(), logging.INFO)


def configure_logging(level_name: str) -> None:
    logging.basicConfig(level=_resolve_log_level(level_name))

    # Suppress verbose Google SDK and httpx logging
    logging.getLogger("google_genai.models").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def serve(host: str, port: int, reload: bool = False) -> None:
    """Start the FastAPI server."""
    import uvicorn

    logger.info("Starting API server", host=host, port=port)
    uvicorn.run("submittal_review.api:app", host=host, port=port, reload=reload)


def print_summary(project_path: str) -> int:
    from submittal_review.tools.project_loader import load_review_project
    from submittal_review.tools.status_counts import compute_status_counts, summarize_articles

    project = load_review_project(project_path)
    counts = compute_status_counts(project.articles)

    print(f"{project.project.project_title or 'Untitled project'}")
    print(f"Review progress: {counts.total_dispositioned}/{counts.total}")
    print(
        f"  Fulfilled: {counts.fulfilled}  Not Applicable: {counts.not_applicable}  "
        f"Non-Compliant: {counts.not_compliant}  Bookmarked: {counts.bookmarked}"
    )
    for article in summarize_articles(project.articles):
        print(
            f"\n{article.article_name}  [{article.counts.total_dispositioned}/{article.counts.total} reviewed, "
            f"{article.bixby_issues.not_compliant} non-compliant, {article.bixby_issues.unclear} unclear]"
        )
        for requirement in article.requirements:
            badge = requirement.user_status.value if requirement.user_status else "review"
            flag = f" ({requirement.bixby_issue.value})" if requirement.bixby_issue else ""
            print(f"  - {requirement.requirement_id}: {badge}{flag}")
    return 0


def print_draft(project_path: str, recipients: list[str], filters: list[str] | None, query: str | None) -> int:
    from submittal_review.agents.email_composer import EmailComposerAgent
    from submittal_review.session import EmailSession, InvalidRecipientError
    from submittal_review.tools.email_items import collect_email_candidates, parse_filters
    from submittal_review.tools.project_loader import load_review_project

    project = load_review_project(project_path)
    session = EmailSession()
    try:
        for email in recipients:
            session.add_recipient(email)
    except InvalidRecipientError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    for _, items in collect_email_candidates(project, parse_filters(filters), query):
        for item in items:
            session.add_item(item)
    if not session.items:
        print("No flagged requirements match the selected filters.", file=sys.stderr)
        return 1

    composer = EmailComposerAgent(
        api_key=settings.gemini_api_key,
        model=settings.composer_model,
        temperature=settings.llm_temperature,
    )
    draft = composer.compose(session.recipients, session.items_with_notes(), project.project)
    session.apply_draft(draft)
    logger.info("Draft composed", strategy=draft.strategy, items=len(session.items))

    print(f"Subject: {session.subject}\n")
    print(session.body)
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Submittal compliance review")
    parser.add_argument(
        "--project",
        default=settings.project_data_path,
        help="Path to the project JSON (default: PROJECT_DATA_PATH)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default=settings.api_host)
    serve_parser.add_argument("--port", type=int, default=settings.api_port)
    serve_parser.add_argument("--reload", action="store_true")

    subparsers.add_parser("summary", help="Print review progress for the project")

    draft_parser = subparsers.add_parser("draft", help="Draft a review-request email for flagged items")
    draft_parser.add_argument("--to", dest="recipients", action="append", required=True, help="Recipient email (repeatable)")
    draft_parser.add_argument(
        "--filter",
        dest="filters",
        action="append",
        default=None,
        help="bookmarked, non-compliant or not-reviewed (repeatable; default: all)",
    )
    draft_parser.add_argument("--search", default=None, help="Narrow items by text")

    args = parser.parse_args()
    configure_logging(settings.log_level)

    if args.command == "serve":
        serve(args.host, args.port, reload=args.reload)
        return
    if args.command == "summary":
        raise SystemExit(print_summary(args.project))
    raise SystemExit(print_draft(args.project, args.recipients, args.filters, args.search))


if __name__ == "__main__":
    main()
