"""Data models for submittal compliance review."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class UserDisposition(str, Enum):
    """Disposition entered by the reviewing user."""

    FULFILLED = "fulfilled"
    NOT_COMPLIANT = "not_compliant"
    NOT_APPLICABLE = "not_applicable"
    BOOKMARKED = "bookmarked"


class BixbyDisposition(str, Enum):
    """Automated compliance assessment."""

    COMPLIANT = "COMPLIANT"
    NOT_COMPLIANT = "NOT_COMPLIANT"
    UNCLEAR = "UNCLEAR"


def _coerce_user_disposition(value):
    if isinstance(value, UserDisposition) or value is None:
        return value
    try:
        return UserDisposition(str(value).strip().lower())
    except ValueError:
        return None


class CamelModel(BaseModel):
    """Base model that reads and writes the camelCase field names used on the wire."""

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# REVIEW TREE
# =============================================================================

class BixbyReview(CamelModel):
    """Automated review of one product against one requirement."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    status: BixbyDisposition
    explanation: str = ""


class UserReview(CamelModel):
    """Human review; status None means not yet reviewed."""

    status: Optional[UserDisposition] = None
    bookmark_note: Optional[str] = Field(default=None, alias="bookmarkNote")

    @field_validator("status", mode="before")
    @classmethod
    def _unknown_status_is_unreviewed(cls, value):
        return _coerce_user_disposition(value)


class ProductReview(CamelModel):
    """One product's compliance status against one requirement."""

    id: str
    product_id: int = Field(alias="productId")
    bixby_review: BixbyReview = Field(alias="bixbyReview")
    user_review: UserReview = Field(default_factory=UserReview, alias="userReview")

    @field_validator("user_review", mode="before")
    @classmethod
    def _null_review_is_unreviewed(cls, value):
        return UserReview() if value is None else value


class RequirementText(CamelModel):
    short_description: str = Field(alias="shortDescription")


class Requirement(CamelModel):
    """A specification requirement and the product reviews made against it."""

    id: str
    requirement: RequirementText
    product_reviews: list[ProductReview] = Field(default_factory=list, alias="productReviews")

    @property
    def short_description(self) -> str:
        return self.requirement.short_description


class ArticleDetails(CamelModel):
    text: str
    article_number: str = Field(alias="articleNumber")


class Article(CamelModel):
    """A specification article, identified by its article number."""

    article_details: ArticleDetails = Field(alias="articleDetails")
    requirements: list[Requirement] = Field(default_factory=list)

    @property
    def article_number(self) -> str:
        return self.article_details.article_number

    @property
    def name(self) -> str:
        return self.article_details.text


class Product(CamelModel):
    """A submitted product."""

    id: int
    product_name: str = Field(alias="productName")
    manufacturer: str = ""


class ProjectContext(CamelModel):
    """Descriptive project context used to steer drafted emails."""

    project_title: str = Field(default="", alias="projectTitle")
    spec_file_name: str = Field(default="", alias="specFileName")
    spec_description: str = Field(default="", alias="specDescription")
    submittal_file_name: str = Field(default="", alias="submittalFileName")
    submittal_description: str = Field(default="", alias="submittalDescription")
    subcontractor: str = ""


class ReviewProject(CamelModel):
    """A loaded project: context, product catalog and article tree."""

    project: ProjectContext = Field(default_factory=ProjectContext)
    products: list[Product] = Field(default_factory=list)
    articles: list[Article] = Field(default_factory=list)

    def product_names(self) -> dict[int, str]:
        return {product.id: product.product_name for product in self.products}


# =============================================================================
# EMAIL
# =============================================================================

class EmailRecipient(CamelModel):
    email: str
    name: str = ""


class EmailItemProduct(CamelModel):
    """A flagged product review carried inside an EmailItem."""

    product_id: int = Field(alias="productId")
    product_name: str = Field(default="", alias="productName")
    review_id: str = Field(default="", alias="reviewId")
    status: Optional[BixbyDisposition] = None
    user_status: Optional[UserDisposition] = Field(default=None, alias="userStatus")
    note: str = ""

    @field_validator("user_status", mode="before")
    @classmethod
    def _unknown_user_status(cls, value):
        return _coerce_user_disposition(value)

    @field_validator("note", mode="before")
    @classmethod
    def _null_note(cls, value):
        return value or ""

    @property
    def is_non_compliant(self) -> bool:
        return (
            self.status == BixbyDisposition.NOT_COMPLIANT
            or self.user_status == UserDisposition.NOT_COMPLIANT
        )

    @property
    def is_bookmarked(self) -> bool:
        return self.user_status == UserDisposition.BOOKMARKED


class EmailItem(CamelModel):
    """One requirement's flagged product reviews, bundled for an outgoing email."""

    id: str
    article_name: str = Field(default="", alias="articleName")
    article_number: str = Field(default="", alias="articleNumber")
    requirement_id: str = Field(default="", alias="requirementId")
    requirement: str = ""
    products: list[EmailItemProduct] = Field(default_factory=list)
    note: str = ""

    @field_validator("note", mode="before")
    @classmethod
    def _null_note(cls, value):
        return value or ""


# =============================================================================
# AGGREGATES
# =============================================================================

class StatusCounts(CamelModel):
    """User disposition counts over a set of product reviews."""

    fulfilled: int = 0
    bookmarked: int = 0
    not_compliant: int = Field(default=0, alias="notCompliant")
    not_applicable: int = Field(default=0, alias="notApplicable")
    total: int = 0
    total_dispositioned: int = Field(default=0, alias="totalDispositioned")

    @computed_field
    @property
    def unreviewed(self) -> int:
        return self.total - self.total_dispositioned

    @computed_field
    @property
    def progress(self) -> float:
        if not self.total:
            return 0.0
        return round(self.total_dispositioned / self.total, 4)


class BixbyIssueCounts(CamelModel):
    unclear: int = 0
    not_compliant: int = Field(default=0, alias="notCompliant")


class RequirementSummary(CamelModel):
    requirement_id: str = Field(alias="requirementId")
    short_description: str = Field(alias="shortDescription")
    user_status: Optional[UserDisposition] = Field(default=None, alias="userStatus")
    bixby_issue: Optional[BixbyDisposition] = Field(default=None, alias="bixbyIssue")


class ArticleSummary(CamelModel):
    """Per-article review row."""

    article_number: str = Field(alias="articleNumber")
    article_name: str = Field(alias="articleName")
    requirement_count: int = Field(alias="requirementCount")
    counts: StatusCounts
    bixby_issues: BixbyIssueCounts = Field(alias="bixbyIssues")
    requirements: list[RequirementSummary] = Field(default_factory=list)
