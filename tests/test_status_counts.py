"""Test disposition counting and per-requirement badges."""

from submittal_review.models.schemas import BixbyDisposition, Requirement, UserDisposition
from submittal_review.tools.status_counts import (
    compute_article_counts,
    compute_status_counts,
    count_bixby_issues,
    dominant_bixby_issue,
    dominant_user_status,
    summarize_articles,
)

from conftest import make_article, make_requirement, make_review


def _requirement(*statuses: str | None) -> Requirement:
    reviews = [make_review(f"R-{i}", 123, "COMPLIANT", status) for i, status in enumerate(statuses)]
    return Requirement.model_validate(make_requirement("R", "Requirement", reviews))


def test_global_counts_partition_reviews(articles) -> None:
    counts = compute_status_counts(articles)

    assert counts.total == 8
    assert counts.fulfilled == 3
    assert counts.not_compliant == 1
    assert counts.bookmarked == 1
    assert counts.not_applicable == 1
    assert counts.total_dispositioned == 6
    assert counts.total_dispositioned == (
        counts.fulfilled + counts.bookmarked + counts.not_compliant + counts.not_applicable
    )
    assert counts.unreviewed == 2


def test_total_matches_every_review_in_tree(articles) -> None:
    expected = sum(len(req.product_reviews) for article in articles for req in article.requirements)
    assert compute_status_counts(articles).total == expected


def test_counts_for_empty_collection() -> None:
    counts = compute_status_counts([])
    assert counts.total == 0
    assert counts.total_dispositioned == 0
    assert counts.progress == 0.0


def test_unknown_status_counts_as_unreviewed() -> None:
    article = make_article("9.1", "9.1 Misc", [
        make_requirement("9.1.A", "Odd data", [
            make_review("9.1.A-1", 1, "COMPLIANT", "approved-ish"),
            make_review("9.1.A-2", 1, "COMPLIANT", "fulfilled"),
        ]),
    ])

    counts = compute_article_counts(article)

    assert counts.total == 2
    assert counts.total_dispositioned == 1
    assert counts.unreviewed == 1


def test_serialized_counts_use_wire_names(articles) -> None:
    payload = compute_status_counts(articles).model_dump(by_alias=True)
    assert payload["notCompliant"] == 1
    assert payload["totalDispositioned"] == 6
    assert payload["progress"] == 0.75


def test_bixby_issue_counts_per_article(articles) -> None:
    blade, wind = articles

    assert count_bixby_issues(blade).not_compliant == 2
    assert count_bixby_issues(blade).unclear == 0
    assert count_bixby_issues(wind).unclear == 3
    assert count_bixby_issues(wind).not_compliant == 0


def test_non_compliant_beats_fulfilled() -> None:
    assert dominant_user_status(_requirement("fulfilled", "not_compliant")) == UserDisposition.NOT_COMPLIANT


def test_fulfilled_beats_bookmarked() -> None:
    assert dominant_user_status(_requirement("bookmarked", "fulfilled")) == UserDisposition.FULFILLED


def test_not_applicable_beats_bookmarked() -> None:
    assert dominant_user_status(_requirement("bookmarked", None, "not_applicable")) == UserDisposition.NOT_APPLICABLE


def test_no_statused_reviews_yields_none() -> None:
    assert dominant_user_status(_requirement(None, None)) is None
    assert dominant_user_status(_requirement()) is None


def test_dominant_bixby_issue_is_first_flagged_review() -> None:
    requirement = Requirement.model_validate(make_requirement("R", "Requirement", [
        make_review("R-1", 1, "COMPLIANT", None),
        make_review("R-2", 1, "UNCLEAR", None),
        make_review("R-3", 1, "NOT_COMPLIANT", None),
    ]))
    assert dominant_bixby_issue(requirement) == BixbyDisposition.UNCLEAR


def test_summarize_articles(articles) -> None:
    summaries = summarize_articles(articles)

    assert [s.article_number for s in summaries] == ["2.3", "2.2"]
    blade = summaries[0]
    assert blade.requirement_count == 3
    assert blade.counts.total == 3
    badges = {r.requirement_id: r.user_status for r in blade.requirements}
    assert badges == {
        "2.3.A": UserDisposition.FULFILLED,
        "2.3.C.3": UserDisposition.NOT_COMPLIANT,
        "2.3.D.2": None,
    }
    assert blade.requirements[1].bixby_issue == BixbyDisposition.NOT_COMPLIANT
    assert blade.requirements[0].bixby_issue is None
