"""
Maintenance commands.

    python -m nobodyreads.cli init-db
    python -m nobodyreads.cli bootstrap-site
    python -m nobodyreads.cli publish posts/*.md
    python -m nobodyreads.cli remove-site-script
    python -m nobodyreads.cli use-minimal-css
    python -m nobodyreads.cli prune-revisions [--keep 50]
    python -m nobodyreads.cli check-integrity

Every command except use-minimal-css acts on one tenant: --tenant, else
TENANT_ID, else the default tenant. use-minimal-css updates every tenant
that has a site bundle.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from nobodyreads.config import settings
from nobodyreads.constants import DEFAULT_TENANT_ID
from nobodyreads.database import AsyncSessionLocal, init_db
from nobodyreads.exceptions import ValidationError
from nobodyreads.middleware.logging import setup_structured_logging
from nobodyreads.schemas.page import Page
from nobodyreads.schemas.site_bundle import SiteBundleIn, SiteBundleRevision
from nobodyreads.services import page_service, site_bundle_service
from nobodyreads.site.defaults import DEFAULT_SITE_CSS, DEFAULT_SITE_TEMPLATE, SITE_SCRIPT_TAG_RE
from nobodyreads.utils.frontmatter import page_from_markdown


# ── Commands ───────────────────────────────────────────────────────────────────


async def bootstrap_site(db: AsyncSession, tenant_id: str) -> SiteBundleRevision | None:
    """Save the default template as the first revision. No-op if the tenant has history."""
    if await site_bundle_service.list_revisions(db, tenant_id):
        return None
    bundle = SiteBundleIn(html=DEFAULT_SITE_TEMPLATE, css=DEFAULT_SITE_CSS, js="")
    return await site_bundle_service.append_revision(db, bundle, tenant_id)


async def publish_files(db: AsyncSession, paths: Sequence[Path], tenant_id: str) -> list[Page]:
    """
    Upsert pages from markdown files with front matter.

    Every file is parsed before anything is written, so one bad file
    publishes nothing.
    """
    pages = [page_from_markdown(path.read_text(encoding="utf-8"), source=str(path)) for path in paths]
    for page in pages:
        await page_service.upsert(db, page, tenant_id)
    return pages


async def remove_site_script(db: AsyncSession, tenant_id: str) -> SiteBundleRevision | None:
    """Save a revision of the active bundle without the legacy /site.js include."""
    bundle = await site_bundle_service.get_active_bundle(db, tenant_id)
    if bundle is None:
        return None
    cleaned = SITE_SCRIPT_TAG_RE.sub("\n", bundle.html)
    return await site_bundle_service.append_revision(
        db, SiteBundleIn(html=cleaned, css=bundle.css, js=bundle.js), tenant_id
    )


async def use_minimal_css(db: AsyncSession) -> list[str]:
    """Save a revision with the default CSS for every tenant with a bundle. Returns the tenants touched."""
    tenant_ids = await site_bundle_service.list_bundle_tenants(db) or [DEFAULT_TENANT_ID]
    for tenant_id in tenant_ids:
        bundle = await site_bundle_service.get_active_bundle(db, tenant_id)
        payload = SiteBundleIn(
            html=bundle.html if bundle else "",
            css=DEFAULT_SITE_CSS,
            js=bundle.js if bundle else "",
        )
        await site_bundle_service.append_revision(db, payload, tenant_id)
    return tenant_ids


def _page_flags(page: Page) -> str:
    flags = ["published" if page.published else "draft", page.kind.value]
    if page.nav:
        flags.append(f"nav:{page.nav.label}({page.nav.order})")
    if page.seo and page.seo.no_ai_training:
        flags.append("no-ai-training")
    if page.seo and page.seo.no_index:
        flags.append("noindex")
    return ", ".join(flags)


async def run(args: argparse.Namespace) -> int:
    await init_db()
    tenant_id = args.tenant

    async with AsyncSessionLocal() as db:
        if args.command == "init-db":
            print("Database initialized.")

        elif args.command == "bootstrap-site":
            revision = await bootstrap_site(db, tenant_id)
            if revision is None:
                print(f"Site bundle already initialized for tenant {tenant_id}.")
            else:
                print(f"Initialized site bundle for tenant {tenant_id} (revision {revision.revision_id}).")

        elif args.command == "publish":
            try:
                pages = await publish_files(db, args.files, tenant_id)
            except ValidationError as e:
                print(e.message, file=sys.stderr)
                return 1
            for page in pages:
                print(f"[{_page_flags(page)}] {page.id}: {page.title} (tenant: {tenant_id})")
            print("done")

        elif args.command == "remove-site-script":
            if await remove_site_script(db, tenant_id) is None:
                print(f"No bundle found for tenant {tenant_id}.")
            else:
                print(f"Removed /site.js script from bundle for tenant {tenant_id}.")

        elif args.command == "use-minimal-css":
            for touched in await use_minimal_css(db):
                print(f"Applied minimal CSS to tenant {touched}")

        elif args.command == "prune-revisions":
            removed = await site_bundle_service.prune_revisions(db, tenant_id, keep=args.keep)
            print(f"Removed {removed} revisions for tenant {tenant_id}.")

        elif args.command == "check-integrity":
            duplicates = await page_service.find_duplicate_published(db, tenant_id)
            if not duplicates:
                print(f"No duplicate published pages for tenant {tenant_id}.")
                return 0
            for group in duplicates:
                target = group.kind.value if group.slug is None else f"{group.kind.value} /{group.slug}"
                print(f"{target}: {', '.join(group.page_ids)}")
            return 1

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nobodyreads",
        description="nobodyreads maintenance commands.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--tenant", default=settings.tenant_id, help="Tenant id to act on")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create missing tables and columns")
    sub.add_parser("bootstrap-site", help="Seed the default site bundle if the tenant has none")
    publish = sub.add_parser("publish", help="Publish markdown files with front matter")
    publish.add_argument("files", nargs="+", type=Path, help="Markdown files")
    sub.add_parser("remove-site-script", help="Strip the legacy /site.js include from the active bundle")
    sub.add_parser("use-minimal-css", help="Switch every tenant's bundle to the default CSS")
    prune = sub.add_parser("prune-revisions", help="Drop site bundle revisions beyond the retention limit")
    prune.add_argument("--keep", type=int, default=settings.revision_retention, help="Revisions to keep")
    sub.add_parser("check-integrity", help="Report published pages competing for the same URL")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_structured_logging(settings.log_level, json_format=settings.json_logs)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
