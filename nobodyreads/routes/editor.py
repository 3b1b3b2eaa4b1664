"""
Editor API

JSON endpoints used by the admin editor. All routes require the editor
token when one is configured and act on the request's tenant.

GET    /admin/api/pages                         → all pages, drafts included
POST   /admin/api/pages                         → create page with a generated id
GET    /admin/api/pages/{page_id}               → page
PUT    /admin/api/pages/{page_id}               → create or replace page
DELETE /admin/api/pages/{page_id}               → delete page
GET    /admin/api/site                          → active bundle and revision history
POST   /admin/api/site/revisions                → save a new revision
POST   /admin/api/site/use-minimal              → save a revision with the default CSS
GET    /admin/api/site/revisions/latest         → newest revision id (preview polling)
GET    /admin/api/site/revisions/{revision_id}  → revision
POST   /admin/api/site/revisions/{revision_id}/use → roll back to a revision
DELETE /admin/api/site/revisions/{revision_id}  → delete revision
GET    /admin/api/integrity                     → duplicate published pages
"""

import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from nobodyreads.auth import require_editor
from nobodyreads.constants import PageKind
from nobodyreads.database import get_db
from nobodyreads.exceptions import PageNotFoundError, RevisionNotFoundError
from nobodyreads.middleware.tenant import get_tenant_id
from nobodyreads.schemas.page import DuplicateGroup, Page, PageSave
from nobodyreads.schemas.site_bundle import SiteBundleIn, SiteBundleRevision, SiteEditorState
from nobodyreads.services import page_service, site_bundle_service
from nobodyreads.site.defaults import DEFAULT_SITE_CSS
from nobodyreads.utils.slugify import slugify

router = APIRouter(prefix="/admin/api", tags=["Editor"], dependencies=[Depends(require_editor)])
logger = logging.getLogger(__name__)

PAGE_ID_PATTERN = r"^[A-Za-z0-9_-]+$"


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


async def _save_page(
    db: AsyncSession,
    page_id: str,
    payload: PageSave,
    tenant_id: str,
    existing: Page | None,
) -> Page:
    """
    Build the stored page from an editor payload.

    On update an empty content field keeps the stored content, so a
    truncated submission never wipes a page. A missing slug is derived
    from the title (or the id when the title has no usable characters),
    except for the home page.
    """
    is_new = existing is None
    content = payload.content
    slug = payload.slug
    if not slug and payload.kind is not PageKind.HOME:
        slug = slugify(payload.title) or slugify(page_id)
    if not is_new and not content and existing.content:
        content = existing.content

    page = Page(
        id=page_id,
        slug=slug,
        title=payload.title,
        content=content,
        excerpt=payload.excerpt,
        tags=payload.tags,
        date=payload.date or _today(),
        updated=None if is_new else _today(),
        published=payload.published,
        scripts=payload.scripts,
        seo=payload.seo,
        kind=payload.kind,
        nav=payload.nav,
    )
    return await page_service.upsert(db, page, tenant_id)


# ── Pages ──────────────────────────────────────────────────────────────────────


@router.get("/pages", response_model=list[Page])
async def list_pages(db: AsyncSession = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return await page_service.list_all(db, tenant_id)


@router.post("/pages", response_model=Page, status_code=status.HTTP_201_CREATED)
async def create_page(
    payload: PageSave,
    db: AsyncSession = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    page = await _save_page(db, str(uuid.uuid4()), payload, tenant_id, existing=None)
    logger.info("Created page %s for tenant %s", page.id, tenant_id)
    return page


@router.get("/pages/{page_id}", response_model=Page)
async def get_page(
    page_id: str = Path(..., pattern=PAGE_ID_PATTERN),
    db: AsyncSession = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    page = await page_service.get_by_id(db, page_id, tenant_id)
    if page is None:
        raise PageNotFoundError(page_id)
    return page


@router.put("/pages/{page_id}", response_model=Page)
async def save_page(
    payload: PageSave,
    page_id: str = Path(..., pattern=PAGE_ID_PATTERN),
    db: AsyncSession = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    existing = await page_service.get_by_id(db, page_id, tenant_id)
    return await _save_page(db, page_id, payload, tenant_id, existing)


@router.delete("/pages/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page(
    page_id: str = Path(..., pattern=PAGE_ID_PATTERN),
    db: AsyncSession = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    if not await page_service.delete_by_id(db, page_id, tenant_id):
        raise PageNotFoundError(page_id)
    logger.info("Deleted page %s for tenant %s", page_id, tenant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Site bundle ────────────────────────────────────────────────────────────────


@router.get("/site", response_model=SiteEditorState)
async def get_site(db: AsyncSession = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return SiteEditorState(
        bundle=await site_bundle_service.get_active_bundle(db, tenant_id),
        revisions=await site_bundle_service.list_revisions(db, tenant_id),
        current_revision_id=await site_bundle_service.get_current_revision_id(db, tenant_id),
    )


@router.post("/site/revisions", response_model=SiteBundleRevision, status_code=status.HTTP_201_CREATED)
async def save_site_revision(
    payload: SiteBundleIn,
    db: AsyncSession = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return await site_bundle_service.append_revision(db, payload, tenant_id)


@router.post("/site/use-minimal", response_model=SiteBundleRevision, status_code=status.HTTP_201_CREATED)
async def use_minimal_css(db: AsyncSession = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    bundle = await site_bundle_service.get_active_bundle(db, tenant_id)
    payload = SiteBundleIn(
        html=bundle.html if bundle else "",
        css=DEFAULT_SITE_CSS,
        js=bundle.js if bundle else "",
    )
    return await site_bundle_service.append_revision(db, payload, tenant_id)


@router.get("/site/revisions/latest")
async def get_latest_revision(
    response: Response,
    db: AsyncSession = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    response.headers["Cache-Control"] = "no-store"
    return {"revisionId": await site_bundle_service.get_latest_revision_id(db, tenant_id)}


@router.get("/site/revisions/{revision_id}", response_model=SiteBundleRevision)
async def get_site_revision(
    revision_id: int,
    db: AsyncSession = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    revision = await site_bundle_service.get_revision(db, revision_id, tenant_id)
    if revision is None:
        raise RevisionNotFoundError(revision_id)
    return revision


@router.post("/site/revisions/{revision_id}/use", response_model=SiteBundleRevision)
async def use_site_revision(
    revision_id: int,
    db: AsyncSession = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return await site_bundle_service.set_current_revision(db, revision_id, tenant_id)


@router.delete("/site/revisions/{revision_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_site_revision(
    revision_id: int,
    db: AsyncSession = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    if not await site_bundle_service.delete_revision(db, revision_id, tenant_id):
        raise RevisionNotFoundError(revision_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Integrity ──────────────────────────────────────────────────────────────────


@router.get("/integrity", response_model=list[DuplicateGroup])
async def check_integrity(db: AsyncSession = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return await page_service.find_duplicate_published(db, tenant_id)
