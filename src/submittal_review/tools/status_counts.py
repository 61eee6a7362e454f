"""Helpers for counting review dispositions and picking per-requirement badges."""

from __future__ import annotations

from typing import Iterable

from submittal_review.models.schemas import (
    Article,
    ArticleSummary,
    BixbyDisposition,
    BixbyIssueCounts,
    ProductReview,
    Requirement,
    RequirementSummary,
    StatusCounts,
    UserDisposition,
)

_COUNT_FIELDS = {
    UserDisposition.FULFILLED: "fulfilled",
    UserDisposition.BOOKMARKED: "bookmarked",
    UserDisposition.NOT_COMPLIANT: "not_compliant",
    UserDisposition.NOT_APPLICABLE: "not_applicable",
}

# Order in which non-short-circuit statuses claim a requirement badge.
_BADGE_PRECEDENCE = (
    UserDisposition.FULFILLED,
    UserDisposition.NOT_APPLICABLE,
    UserDisposition.BOOKMARKED,
)


def iter_reviews(articles: Iterable[Article]) -> Iterable[ProductReview]:
    for article in articles:
        for requirement in article.requirements:
            yield from requirement.product_reviews


def count_reviews(reviews: Iterable[ProductReview]) -> StatusCounts:
    """Tally user dispositions; reviews without a status count as unreviewed."""
    tally = {field: 0 for field in _COUNT_FIELDS.values()}
    total = 0
    for review in reviews:
        total += 1
        status = review.user_review.status if review.user_review else None
        field = _COUNT_FIELDS.get(status)
        if field:
            tally[field] += 1

    return StatusCounts(
        **tally,
        total=total,
        total_dispositioned=sum(tally.values()),
    )


def compute_status_counts(articles: Iterable[Article]) -> StatusCounts:
    """Global disposition counts across every product review in the project."""
    return count_reviews(iter_reviews(articles))


def compute_article_counts(article: Article) -> StatusCounts:
    return count_reviews(iter_reviews([article]))


def count_bixby_issues(article: Article) -> BixbyIssueCounts:
    """Count UNCLEAR and NOT_COMPLIANT automated reviews in one article."""
    unclear = 0
    not_compliant = 0
    for review in iter_reviews([article]):
        if review.bixby_review.status == BixbyDisposition.UNCLEAR:
            unclear += 1
        elif review.bixby_review.status == BixbyDisposition.NOT_COMPLIANT:
            not_compliant += 1
    return BixbyIssueCounts(unclear=unclear, not_compliant=not_compliant)


def dominant_user_status(requirement: Requirement) -> UserDisposition | None:
    """Collapse product-level user statuses into one badge for the requirement.

    NOT_COMPLIANT wins outright. Otherwise the highest of FULFILLED,
    NOT_APPLICABLE, BOOKMARKED present is returned, or None when no review
    has been dispositioned.
    """
    seen: set[UserDisposition] = set()
    for review in requirement.product_reviews:
        status = review.user_review.status
        if status is None:
            continue
        if status == UserDisposition.NOT_COMPLIANT:
            return status
        seen.add(status)

    for status in _BADGE_PRECEDENCE:
        if status in seen:
            return status
    return None


def dominant_bixby_issue(requirement: Requirement) -> BixbyDisposition | None:
    """First NOT_COMPLIANT or UNCLEAR automated status, in review order."""
    for review in requirement.product_reviews:
        if review.bixby_review.status in (BixbyDisposition.NOT_COMPLIANT, BixbyDisposition.UNCLEAR):
            return review.bixby_review.status
    return None


def summarize_articles(articles: Iterable[Article]) -> list[ArticleSummary]:
    summaries = []
    for article in articles:
        summaries.append(
            ArticleSummary(
                article_number=article.article_number,
                article_name=article.name,
                requirement_count=len(article.requirements),
                counts=compute_article_counts(article),
                bixby_issues=count_bixby_issues(article),
                requirements=[
                    RequirementSummary(
                        requirement_id=requirement.id,
                        short_description=requirement.short_description,
                        user_status=dominant_user_status(requirement),
                        bixby_issue=dominant_bixby_issue(requirement),
                    )
                    for requirement in article.requirements
                ],
            )
        )
    return summaries
