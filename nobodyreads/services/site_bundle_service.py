"""
Site Bundle Service

Append-only revision history of a tenant's editable site shell (HTML, CSS
and JS) with a movable "current" pointer.

Reading the active bundle follows a fixed strategy, first hit wins:

    1. pointer -> revision      the revision the tenant's pointer names
    2. pointer -> legacy inline html/css/js stored on the pointer row
                                 by releases that predate revisions
    3. latest revision           newest revision of the tenant

A tenant with none of these has no bundle and callers fall back to the
default template.

Appending inserts the revision and moves the pointer in one transaction,
pointer write last. Pruning to the retention limit runs afterwards as
housekeeping; its failure is logged and never fails the append.

Deleting the revision the pointer names repoints it at the newest
remaining revision (or None) in the same transaction, so the pointer never
dangles.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from sqlalchemy import delete, select, union
from sqlalchemy.ext.asyncio import AsyncSession

from nobodyreads.config import settings
from nobodyreads.exceptions import RevisionNotFoundError
from nobodyreads.models.site_bundle import SiteBundle as SiteBundleRow
from nobodyreads.models.site_bundle import SiteBundleRevision as RevisionRow
from nobodyreads.schemas.site_bundle import SiteBundle, SiteBundleIn, SiteBundleRevision
from nobodyreads.utils.upsert import upsert_statement

logger = logging.getLogger(__name__)


def _to_revision(row: RevisionRow) -> SiteBundleRevision:
    return SiteBundleRevision(
        revision_id=row.revision_id,
        html=row.html or "",
        css=row.css or "",
        js=row.js or "",
        created_at=row.created_at,
    )


def _revision_bundle(row: RevisionRow) -> SiteBundle:
    return SiteBundle(html=row.html or "", css=row.css or "", js=row.js or "", updated_at=row.created_at)


async def _get_pointer(db: AsyncSession, tenant_id: str) -> SiteBundleRow | None:
    # The pointer is moved with Core upserts, so refresh any instance already in the session
    result = await db.execute(
        select(SiteBundleRow)
        .where(SiteBundleRow.tenant_id == tenant_id)
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def _get_revision_row(db: AsyncSession, revision_id: int, tenant_id: str) -> RevisionRow | None:
    result = await db.execute(
        select(RevisionRow).where(RevisionRow.revision_id == revision_id, RevisionRow.tenant_id == tenant_id).limit(1)
    )
    return result.scalars().first()


async def _get_latest_revision_row(db: AsyncSession, tenant_id: str) -> RevisionRow | None:
    result = await db.execute(
        select(RevisionRow).where(RevisionRow.tenant_id == tenant_id).order_by(RevisionRow.revision_id.desc()).limit(1)
    )
    return result.scalars().first()


async def _write_pointer(db: AsyncSession, tenant_id: str, revision_id: int | None) -> None:
    """Insert or move the tenant's current pointer. Does not commit."""
    stmt = upsert_statement(
        db,
        SiteBundleRow,
        {"tenant_id": tenant_id, "current_revision_id": revision_id, "updated_at": datetime.now(timezone.utc)},
        conflict_columns=[SiteBundleRow.tenant_id],
        update_columns=["current_revision_id", "updated_at"],
    )
    await db.execute(stmt)


# --- Read strategy ---


async def _from_current_revision(db: AsyncSession, tenant_id: str, pointer: SiteBundleRow | None) -> SiteBundle | None:
    if pointer is None or pointer.current_revision_id is None:
        return None
    row = await _get_revision_row(db, pointer.current_revision_id, tenant_id)
    return _revision_bundle(row) if row else None


async def _from_legacy_inline(db: AsyncSession, tenant_id: str, pointer: SiteBundleRow | None) -> SiteBundle | None:
    if pointer is None or not (pointer.html or pointer.css or pointer.js):
        return None
    return SiteBundle(html=pointer.html or "", css=pointer.css or "", js=pointer.js or "", updated_at=pointer.updated_at)


async def _from_latest_revision(db: AsyncSession, tenant_id: str, pointer: SiteBundleRow | None) -> SiteBundle | None:
    row = await _get_latest_revision_row(db, tenant_id)
    return _revision_bundle(row) if row else None


ReadStrategy = Callable[[AsyncSession, str, SiteBundleRow | None], Awaitable[SiteBundle | None]]

READ_STRATEGY: tuple[ReadStrategy, ...] = (
    _from_current_revision,
    _from_legacy_inline,
    _from_latest_revision,
)


async def get_active_bundle(db: AsyncSession, tenant_id: str) -> SiteBundle | None:
    """Return the tenant's active bundle, or None when it has never saved one."""
    pointer = await _get_pointer(db, tenant_id)
    for strategy in READ_STRATEGY:
        bundle = await strategy(db, tenant_id, pointer)
        if bundle is not None:
            return bundle
    return None


# --- History queries ---


async def list_revisions(db: AsyncSession, tenant_id: str) -> list[SiteBundleRevision]:
    """All revisions of a tenant, newest first."""
    result = await db.execute(
        select(RevisionRow).where(RevisionRow.tenant_id == tenant_id).order_by(RevisionRow.revision_id.desc())
    )
    return [_to_revision(row) for row in result.scalars().all()]


async def get_revision(db: AsyncSession, revision_id: int, tenant_id: str) -> SiteBundleRevision | None:
    row = await _get_revision_row(db, revision_id, tenant_id)
    return _to_revision(row) if row else None


async def get_current_revision_id(db: AsyncSession, tenant_id: str) -> int | None:
    pointer = await _get_pointer(db, tenant_id)
    return pointer.current_revision_id if pointer else None


async def get_latest_revision_id(db: AsyncSession, tenant_id: str) -> int | None:
    row = await _get_latest_revision_row(db, tenant_id)
    return row.revision_id if row else None


async def list_bundle_tenants(db: AsyncSession) -> list[str]:
    """Tenants that have a pointer record or at least one revision."""
    result = await db.execute(union(select(SiteBundleRow.tenant_id), select(RevisionRow.tenant_id)))
    return sorted(result.scalars().all())


# --- Writes ---


async def prune_revisions(db: AsyncSession, tenant_id: str, keep: int | None = None) -> int:
    """
    Delete the tenant's revisions beyond the newest ``keep``.

    Returns the number of revisions removed.
    """
    keep = settings.revision_retention if keep is None else keep
    stale = (
        select(RevisionRow.revision_id)
        .where(RevisionRow.tenant_id == tenant_id)
        .order_by(RevisionRow.revision_id.desc())
        .offset(keep)
    )
    stale_ids = list((await db.execute(stale)).scalars().all())
    if not stale_ids:
        return 0

    await db.execute(
        delete(RevisionRow).where(RevisionRow.tenant_id == tenant_id, RevisionRow.revision_id.in_(stale_ids))
    )
    await db.commit()
    logger.info("Pruned %d site bundle revisions for tenant=%s", len(stale_ids), tenant_id)
    return len(stale_ids)


async def append_revision(db: AsyncSession, bundle: SiteBundleIn, tenant_id: str) -> SiteBundleRevision:
    """
    Save a new revision and make it current.

    The insert and the pointer move commit together; retention pruning is
    best effort and cannot fail the call.
    """
    row = RevisionRow(
        tenant_id=tenant_id,
        html=bundle.html,
        css=bundle.css,
        js=bundle.js,
        created_at=datetime.now(timezone.utc),
    )
    db.add(row)
    try:
        await db.flush()
        await _write_pointer(db, tenant_id, row.revision_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    revision = _to_revision(row)
    logger.info("Site bundle revision %d saved for tenant=%s", revision.revision_id, tenant_id)

    try:
        await prune_revisions(db, tenant_id)
    except Exception as e:
        await db.rollback()
        logger.warning(f"Site bundle pruning failed for tenant={tenant_id}: {e}")

    return revision


async def set_current_revision(db: AsyncSession, revision_id: int, tenant_id: str) -> SiteBundleRevision:
    """
    Point the tenant at an existing revision (rollback). Nothing is deleted.

    Raises RevisionNotFoundError if the revision does not exist for the tenant.
    """
    row = await _get_revision_row(db, revision_id, tenant_id)
    if row is None:
        raise RevisionNotFoundError(revision_id)

    await _write_pointer(db, tenant_id, revision_id)
    await db.commit()
    logger.info("Site bundle for tenant=%s now uses revision %d", tenant_id, revision_id)
    return _to_revision(row)


async def delete_revision(db: AsyncSession, revision_id: int, tenant_id: str) -> bool:
    """
    Delete a revision, repointing the tenant if it was the current one.

    Returns True if a revision was removed.
    """
    try:
        result = await db.execute(
            delete(RevisionRow).where(RevisionRow.revision_id == revision_id, RevisionRow.tenant_id == tenant_id)
        )
        deleted = result.rowcount > 0

        if deleted and await get_current_revision_id(db, tenant_id) == revision_id:
            latest = await _get_latest_revision_row(db, tenant_id)
            next_id = latest.revision_id if latest else None
            await _write_pointer(db, tenant_id, next_id)
            logger.info("Site bundle pointer for tenant=%s repaired to revision %s", tenant_id, next_id)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if deleted:
        logger.info("Site bundle revision %d deleted for tenant=%s", revision_id, tenant_id)
    return deleted
