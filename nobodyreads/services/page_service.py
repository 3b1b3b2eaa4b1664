"""
Page Service

Async queries over page records. Every function takes an injected
AsyncSession and an explicit tenant_id; nothing here reads global state.

Public lookups only ever see published pages. ``list_all`` and ``get_by_id``
also return drafts and are meant for the editor.

Lookups that expect a single row return the first match by page_id when
the data holds duplicates; ``find_duplicate_published`` reports those.
Storage errors propagate unchanged.
"""

import logging
from collections import defaultdict

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from nobodyreads.constants import PageKind
from nobodyreads.models.page import Page as PageRow
from nobodyreads.schemas.page import DuplicateGroup, LinkTarget, NavItem, Page, PageMeta, PageNav, PageSummary
from nobodyreads.utils.upsert import upsert_statement

logger = logging.getLogger(__name__)

_MUTABLE_COLUMNS = [
    "slug",
    "title",
    "content",
    "excerpt",
    "tags",
    "date",
    "updated",
    "published",
    "scripts",
    "seo",
    "kind",
    "nav_label",
    "nav_order",
]


# --- Row mappers ---


def _to_page(row: PageRow) -> Page:
    return Page(
        id=row.page_id,
        slug=row.slug,
        title=row.title,
        content=row.content,
        excerpt=row.excerpt,
        tags=list(row.tags or []),
        date=row.date,
        updated=row.updated,
        published=bool(row.published),
        scripts=list(row.scripts) if row.scripts is not None else None,
        seo=PageMeta.model_validate(row.seo) if row.seo else None,
        kind=PageKind(row.kind),
        nav=PageNav(label=row.nav_label, order=row.nav_order or 0) if row.nav_label is not None else None,
    )


def _to_values(page: Page, tenant_id: str) -> dict:
    return {
        "page_id": page.id,
        "tenant_id": tenant_id,
        "slug": page.slug,
        "title": page.title,
        "content": page.content,
        "excerpt": page.excerpt,
        "tags": list(page.tags),
        "date": page.date,
        "updated": page.updated,
        "published": page.published,
        "scripts": list(page.scripts) if page.scripts is not None else None,
        "seo": page.seo.model_dump(mode="json", by_alias=True, exclude_none=True) if page.seo else None,
        "kind": page.kind.value,
        "nav_label": page.nav.label if page.nav else None,
        "nav_order": page.nav.order if page.nav else None,
    }


def _published(tenant_id: str):
    return (PageRow.tenant_id == tenant_id, PageRow.published.is_(True))


# --- Public queries ---


async def list_published_posts(db: AsyncSession, tenant_id: str) -> list[PageSummary]:
    """List published posts, newest first."""
    result = await db.execute(
        select(
            PageRow.page_id,
            PageRow.slug,
            PageRow.title,
            PageRow.excerpt,
            PageRow.tags,
            PageRow.date,
        )
        .where(*_published(tenant_id), PageRow.kind == PageKind.POST.value)
        .order_by(PageRow.date.desc(), PageRow.page_id.asc())
    )
    return [
        PageSummary(id=row.page_id, slug=row.slug, title=row.title, excerpt=row.excerpt, tags=list(row.tags or []), date=row.date)
        for row in result.all()
    ]


async def get_published_by_slug(db: AsyncSession, slug: str, kind: PageKind, tenant_id: str) -> Page | None:
    """Fetch a single published page by slug and kind, or None."""
    result = await db.execute(
        select(PageRow)
        .where(*_published(tenant_id), PageRow.slug == slug, PageRow.kind == PageKind(kind).value)
        .order_by(PageRow.page_id.asc())
        .limit(1)
    )
    row = result.scalars().first()
    return _to_page(row) if row else None


async def get_published_by_kind(db: AsyncSession, kind: PageKind, tenant_id: str) -> Page | None:
    """Fetch the first published page of a given kind (used for home)."""
    result = await db.execute(
        select(PageRow)
        .where(*_published(tenant_id), PageRow.kind == PageKind(kind).value)
        .order_by(PageRow.page_id.asc())
        .limit(1)
    )
    row = result.scalars().first()
    return _to_page(row) if row else None


async def list_nav_items(db: AsyncSession, tenant_id: str) -> list[NavItem]:
    """Published pages with a nav label, ordered by nav order."""
    result = await db.execute(
        select(PageRow.page_id, PageRow.slug, PageRow.kind, PageRow.nav_label, PageRow.nav_order)
        .where(*_published(tenant_id), PageRow.nav_label.is_not(None))
        .order_by(PageRow.nav_order.asc(), PageRow.page_id.asc())
    )
    return [
        NavItem(id=row.page_id, slug=row.slug, kind=PageKind(row.kind), label=row.nav_label, order=row.nav_order or 0)
        for row in result.all()
    ]


async def resolve_links_by_ids(db: AsyncSession, ids: list[str], tenant_id: str) -> list[LinkTarget]:
    """Batch-resolve page ids to their current slug, kind and title."""
    unique_ids = list(dict.fromkeys(ids))
    if not unique_ids:
        return []

    result = await db.execute(
        select(PageRow.page_id, PageRow.slug, PageRow.kind, PageRow.title).where(
            *_published(tenant_id), PageRow.page_id.in_(unique_ids)
        )
    )
    return [
        LinkTarget(id=row.page_id, slug=row.slug, kind=PageKind(row.kind), title=row.title) for row in result.all()
    ]


# --- Editor queries ---


async def list_all(db: AsyncSession, tenant_id: str) -> list[Page]:
    """List every page of a tenant, drafts included, by kind then newest first."""
    result = await db.execute(
        select(PageRow)
        .where(PageRow.tenant_id == tenant_id)
        .order_by(PageRow.kind.asc(), PageRow.date.desc(), PageRow.page_id.asc())
    )
    return [_to_page(row) for row in result.scalars().all()]


async def get_by_id(db: AsyncSession, page_id: str, tenant_id: str) -> Page | None:
    """Fetch a page by its stable id regardless of published status."""
    result = await db.execute(select(PageRow).where(PageRow.page_id == page_id, PageRow.tenant_id == tenant_id))
    row = result.scalars().first()
    return _to_page(row) if row else None


async def delete_by_id(db: AsyncSession, page_id: str, tenant_id: str) -> bool:
    """
    Delete a page by its stable id.

    Returns True if a row was removed.
    """
    result = await db.execute(delete(PageRow).where(PageRow.page_id == page_id, PageRow.tenant_id == tenant_id))
    await db.commit()
    deleted = result.rowcount > 0
    if deleted:
        logger.info("Page deleted: id=%s tenant=%s", page_id, tenant_id)
    return deleted


async def upsert(db: AsyncSession, page: Page, tenant_id: str) -> Page:
    """
    Create or replace a page keyed by (id, tenant_id).

    Every mutable field is overwritten; callers that want to keep a field
    must pass its current value.
    """
    stmt = upsert_statement(
        db,
        PageRow,
        _to_values(page, tenant_id),
        conflict_columns=[PageRow.page_id, PageRow.tenant_id],
        update_columns=_MUTABLE_COLUMNS,
    )
    await db.execute(stmt)
    await db.commit()
    logger.info("Page saved: id=%s kind=%s tenant=%s", page.id, page.kind.value, tenant_id)
    return page


async def find_duplicate_published(db: AsyncSession, tenant_id: str) -> list[DuplicateGroup]:
    """
    Report published pages that compete for a single-match lookup.

    Home pages collide on kind alone; other kinds collide on (kind, slug).
    """
    result = await db.execute(
        select(PageRow.page_id, PageRow.kind, PageRow.slug)
        .where(*_published(tenant_id))
        .order_by(PageRow.page_id.asc())
    )

    groups: dict[tuple[str, str | None], list[str]] = defaultdict(list)
    for row in result.all():
        slug = None if row.kind == PageKind.HOME.value else row.slug
        groups[(row.kind, slug)].append(row.page_id)

    duplicates = [
        DuplicateGroup(kind=PageKind(kind), slug=slug, page_ids=page_ids)
        for (kind, slug), page_ids in sorted(groups.items(), key=lambda item: (item[0][0], item[0][1] or ""))
        if len(page_ids) > 1
    ]
    for group in duplicates:
        logger.warning(
            "Duplicate published pages for tenant=%s kind=%s slug=%s: %s",
            tenant_id,
            group.kind.value,
            group.slug,
            ", ".join(group.page_ids),
        )
    return duplicates
