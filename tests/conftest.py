"""Shared review-tree fixtures."""

import pytest

from submittal_review.models.schemas import (
    Article,
    ProjectContext,
    Product,
    ReviewProject,
)


def make_review(review_id: str, product_id: int, bixby: str, user: str | None, note: str | None = None) -> dict:
    return {
        "id": review_id,
        "productId": product_id,
        "bixbyReview": {"status": bixby, "explanation": f"Automated review for {review_id}"},
        "userReview": {"status": user, "bookmarkNote": note},
    }


def make_requirement(requirement_id: str, text: str, reviews: list[dict]) -> dict:
    return {
        "id": requirement_id,
        "requirement": {"shortDescription": text},
        "productReviews": reviews,
    }


def make_article(number: str, name: str, requirements: list[dict]) -> Article:
    return Article.model_validate(
        {
            "articleDetails": {"text": name, "articleNumber": number},
            "requirements": requirements,
        }
    )


@pytest.fixture
def articles() -> list[Article]:
    return [
        make_article(
            "2.3",
            "2.3 Standard Blade Louvers",
            [
                make_requirement("2.3.A", "Standard blade louvers must be AMCA certified.", [
                    make_review("2.3.A-1", 456, "COMPLIANT", "fulfilled"),
                ]),
                make_requirement("2.3.C.3", "Standard blade louvers must have non-drainable blades.", [
                    make_review("2.3.C.3-1", 456, "NOT_COMPLIANT", "not_compliant", "Non-drainable blade requirement"),
                ]),
                make_requirement("2.3.D.2", "Standard blade louvers must have an air flow of 9514 CFM.", [
                    make_review("2.3.D.2-1", 456, "NOT_COMPLIANT", None),
                ]),
            ],
        ),
        make_article(
            "2.2",
            "2.2 Wind-Driven Rain Resistant Louvers",
            [
                make_requirement("2.2.A", "Wind-driven rain resistant louvers must be AMCA certified.", [
                    make_review("2.2.A-1", 123, "UNCLEAR", "fulfilled"),
                    make_review("2.2.A-2", 456, "COMPLIANT", "not_applicable"),
                ]),
                make_requirement("2.2.B", "Product to be Ruskin EME520DD or equal.", [
                    make_review("2.2.B-1", 123, "COMPLIANT", "bookmarked", "Ask architect if EHH-501 is an acceptable equal"),
                    make_review("2.2.B-2", 456, "UNCLEAR", "fulfilled"),
                ]),
                make_requirement("2.2.C.1", "Sizes are shown on drawings.", [
                    make_review("2.2.C.1-1", 123, "UNCLEAR", None),
                ]),
            ],
        ),
    ]


@pytest.fixture
def product_names() -> dict[int, str]:
    return {
        123: "EHH-501 Wind-Driven Rain Resistant Louver",
        456: "ESD-435 Standard Blade Louver",
    }


@pytest.fixture
def project(articles, product_names) -> ReviewProject:
    return ReviewProject(
        project=ProjectContext(
            project_title="Fixed Louvers",
            submittal_description="Greenheck EHH-501 and ESD-435 louvers.",
            subcontractor="LOUVERS 'R US, INC.",
        ),
        products=[Product(id=pid, product_name=name, manufacturer="Greenheck") for pid, name in product_names.items()],
        articles=articles,
    )
