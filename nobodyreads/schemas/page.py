from typing import Annotated, Literal

from pydantic import AfterValidator, Field, field_validator

from nobodyreads.constants import SLUG_RE, PageKind
from nobodyreads.schemas.base import CamelModel


def normalize_slug(value: str) -> str:
    value = value.strip().lower()
    # Home pages are addressed by kind, so their slug may be empty
    if value and not SLUG_RE.match(value):
        raise ValueError("slug may only contain lowercase letters, digits and hyphens")
    return value


Slug = Annotated[str, AfterValidator(normalize_slug)]


class FaqItem(CamelModel):
    question: str
    answer: str


class PageMeta(CamelModel):
    # SEO
    meta_description: str | None = None
    canonical_url: str | None = None
    og_image: str | None = None
    og_type: str | None = None
    twitter_card: Literal["summary", "summary_large_image"] | None = None
    no_index: bool | None = None
    no_follow: bool | None = None

    # Generative engine optimization: attribution for AI citations
    author_name: str | None = None
    author_expertise: str | None = None
    citations: list[str] | None = None

    # Answer engine optimization
    faq: list[FaqItem] | None = None
    tldr: str | None = None

    no_ai_training: bool | None = None


class PageNav(CamelModel):
    label: str = Field(..., min_length=1, description="Display text in the navigation bar")
    order: int = Field(0, description="Sort position (0 = leftmost)")


class Page(CamelModel):
    id: str = Field(..., min_length=1, description="Stable identifier, used for [[id]] links")
    slug: Slug = Field(..., description="URL path segment; may be renamed")
    title: str = ""
    content: str = Field("", description="Markdown body")
    excerpt: str = ""
    tags: list[str] = Field(default_factory=list)
    date: str
    updated: str | None = None
    published: bool = False
    scripts: list[str] | None = None
    seo: PageMeta | None = None
    kind: PageKind = PageKind.POST
    nav: PageNav | None = None


class PageSave(CamelModel):
    """Editor payload for creating or replacing a page. The id comes from the URL."""

    slug: Slug = ""
    title: str = ""
    content: str = ""
    excerpt: str = ""
    tags: list[str] = Field(default_factory=list)
    date: str | None = None
    published: bool = False
    scripts: list[str] | None = None
    seo: PageMeta | None = None
    kind: PageKind = PageKind.POST
    nav: PageNav | None = None

    @field_validator("title", "excerpt")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value):
        # Accept the comma-separated form used by the editor's tag input
        if isinstance(value, str):
            value = value.split(",")
        return [tag.strip() for tag in value if tag and tag.strip()]


class PageSummary(CamelModel):
    """Lightweight projection used by post listings."""

    id: str
    slug: str
    title: str
    excerpt: str
    tags: list[str]
    date: str


class NavItem(CamelModel):
    id: str
    slug: str
    kind: PageKind
    label: str
    order: int


class LinkTarget(CamelModel):
    """Minimal page info returned by link resolution."""

    id: str
    slug: str
    kind: PageKind
    title: str


class DuplicateGroup(CamelModel):
    """Published pages competing for a lookup that expects a single match."""

    kind: PageKind
    slug: str | None
    page_ids: list[str]
