"""Derive mailable EmailItems from the review tree and narrow them for selection."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Mapping

from submittal_review.models.schemas import (
    Article,
    BixbyDisposition,
    EmailItem,
    EmailItemProduct,
    ReviewProject,
    UserDisposition,
)

_SETTLED_STATUSES = {UserDisposition.FULFILLED, UserDisposition.NOT_APPLICABLE}


class EmailItemFilter(str, Enum):
    """Candidate filters offered when adding items to an email."""

    BOOKMARKED = "bookmarked"
    NON_COMPLIANT = "non-compliant"
    NOT_REVIEWED = "not-reviewed"


DEFAULT_FILTERS = frozenset(EmailItemFilter)


def email_item_id(article_number: str, requirement_id: str) -> str:
    return f"{article_number}-{requirement_id}"


def derive_email_items(
    articles: Iterable[Article],
    product_names: Mapping[int, str] | None = None,
) -> list[EmailItem]:
    """Build one EmailItem per requirement that still has open product reviews.

    Reviews the user marked fulfilled or not applicable are settled and never
    mailed; a requirement whose reviews are all settled yields nothing.
    """
    product_names = product_names or {}
    items: list[EmailItem] = []
    seen: set[str] = set()

    for article in articles:
        for requirement in article.requirements:
            key = email_item_id(article.article_number, requirement.id)
            if key in seen:
                continue

            products = [
                EmailItemProduct(
                    product_id=review.product_id,
                    product_name=product_names.get(review.product_id, f"Product {review.product_id}"),
                    review_id=review.id,
                    status=review.bixby_review.status,
                    user_status=review.user_review.status,
                    note=review.user_review.bookmark_note or "",
                )
                for review in requirement.product_reviews
                if review.user_review.status not in _SETTLED_STATUSES
            ]
            if not products:
                continue

            seen.add(key)
            items.append(
                EmailItem(
                    id=key,
                    article_name=article.name,
                    article_number=article.article_number,
                    requirement_id=requirement.id,
                    requirement=requirement.short_description,
                    products=products,
                )
            )

    return items


def product_matches(product: EmailItemProduct, active_filters: Iterable[EmailItemFilter]) -> bool:
    active = set(active_filters)
    if EmailItemFilter.BOOKMARKED in active and product.user_status == UserDisposition.BOOKMARKED:
        return True
    if EmailItemFilter.NON_COMPLIANT in active and (
        product.user_status == UserDisposition.NOT_COMPLIANT
        or product.status == BixbyDisposition.NOT_COMPLIANT
    ):
        return True
    if EmailItemFilter.NOT_REVIEWED in active and product.user_status is None:
        return True
    return False


def filter_email_items(
    items: Iterable[EmailItem],
    active_filters: Iterable[EmailItemFilter] = DEFAULT_FILTERS,
) -> list[EmailItem]:
    """Keep items with at least one product matching an active filter."""
    active = frozenset(active_filters)
    if not active:
        return []
    return [item for item in items if any(product_matches(p, active) for p in item.products)]


def search_email_items(items: Iterable[EmailItem], query: str | None) -> list[EmailItem]:
    items = list(items)
    if not query or not query.strip():
        return items

    needle = query.strip().lower()
    return [
        item
        for item in items
        if needle in item.article_name.lower()
        or needle in item.requirement.lower()
        or any(
            needle in product.product_name.lower() or needle in product.note.lower()
            for product in item.products
        )
    ]


def group_email_items(items: Iterable[EmailItem]) -> list[tuple[str, list[EmailItem]]]:
    """Group by article number, groups sorted lexicographically."""
    grouped: dict[str, list[EmailItem]] = {}
    for item in items:
        grouped.setdefault(item.article_number, []).append(item)
    return sorted(grouped.items(), key=lambda entry: entry[0])


def parse_filters(values: Iterable[str] | None) -> frozenset[EmailItemFilter]:
    """Parse filter names; None means the default set, unknown names are ignored."""
    if values is None:
        return DEFAULT_FILTERS
    parsed = set()
    for value in values:
        for part in value.split(","):
            try:
                parsed.add(EmailItemFilter(part.strip().lower()))
            except ValueError:
                continue
    return frozenset(parsed)


def collect_email_candidates(
    project: ReviewProject,
    active_filters: Iterable[EmailItemFilter] = DEFAULT_FILTERS,
    query: str | None = None,
) -> list[tuple[str, list[EmailItem]]]:
    items = derive_email_items(project.articles, project.product_names())
    items = filter_email_items(items, active_filters)
    items = search_email_items(items, query)
    return group_email_items(items)
