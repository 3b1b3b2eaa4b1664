"""
Markdown files with a YAML front matter block.

    ---
    title: Mycelium networks and microservices
    slug: mycelium-and-microservices
    date: 2024-03-05
    excerpt: What fungi know about distributed systems.
    tags: [nature, architecture]
    published: true
    seo:
      noAiTraining: true
    ---
    Body in markdown...
"""

import re
from datetime import date, datetime
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from nobodyreads.constants import PageKind
from nobodyreads.exceptions import ValidationError
from nobodyreads.schemas.page import Page, PageMeta, PageNav

FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)

REQUIRED_FIELDS = ("title", "slug", "date", "excerpt")


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Return (front matter mapping, markdown body). Files without front matter get an empty mapping."""
    match = FRONT_MATTER_RE.match(text)
    if not match:
        return {}, text
    data = yaml.safe_load(match.group(1)) or {}
    if not isinstance(data, dict):
        raise ValidationError("Front matter must be a mapping")
    return data, text[match.end():]


def _iso_date(value: Any) -> str:
    # YAML turns bare dates into date objects
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _kind(value: Any) -> PageKind:
    try:
        return PageKind(value)
    except ValueError:
        return PageKind.POST


def _nav(value: Any) -> PageNav | None:
    if not isinstance(value, dict) or not isinstance(value.get("label"), str):
        return None
    return PageNav(label=value["label"], order=value.get("order", 0))


def page_from_markdown(text: str, source: str = "<string>") -> Page:
    """
    Build a Page from a markdown document.

    ``id`` defaults to the slug, ``kind`` to post and ``published`` to false.
    Raises ValidationError when a required field is missing or a value is
    rejected by the page schema.
    """
    data, body = split_front_matter(text)

    for field in REQUIRED_FIELDS:
        if not data.get(field):
            raise ValidationError(f'{source}: missing required field "{field}"', field=field)

    try:
        return Page(
            id=str(data.get("id") or data["slug"]),
            slug=str(data["slug"]),
            title=str(data["title"]),
            content=body.strip(),
            excerpt=str(data["excerpt"]),
            tags=[str(tag) for tag in data.get("tags") or []],
            date=_iso_date(data["date"]),
            updated=_iso_date(data["updated"]) if data.get("updated") else None,
            published=bool(data.get("published", False)),
            scripts=data.get("scripts"),
            seo=PageMeta.model_validate(data["seo"]) if isinstance(data.get("seo"), dict) else None,
            kind=_kind(data.get("kind")),
            nav=_nav(data.get("nav")),
        )
    except PydanticValidationError as e:
        raise ValidationError(f"{source}: invalid front matter", details={"errors": e.errors(include_url=False)}) from e
