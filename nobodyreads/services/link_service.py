"""
Wiki-link resolution.

    [[mycelium-and-microservices]]                 -> [Mycelium networks and microservices](/posts/mycelium-and-microservices)
    [[mycelium-and-microservices|Wood wide web]]   -> [Wood wide web](/posts/mycelium-and-microservices)
    [[nonexistent]]                                -> [broken link: nonexistent]

Links are resolved against the database at render time, so they always
point at a page's current slug even after it has been renamed.
"""

import logging
import re

from sqlalchemy.ext.asyncio import AsyncSession

from nobodyreads.constants import SLUG_PATTERN, PageKind
from nobodyreads.schemas.page import LinkTarget
from nobodyreads.services import page_service

logger = logging.getLogger(__name__)

LINK_PATTERN = re.compile(rf"\[\[({SLUG_PATTERN})(?:\|([^\]]+))?\]\]")


def page_url(kind: PageKind | str, slug: str, url_prefix: str = "") -> str:
    """Build the public URL path of a page from its kind and slug."""
    kind = PageKind(kind)
    if kind is PageKind.HOME:
        return url_prefix or "/"
    if kind is PageKind.POST:
        return f"{url_prefix}/posts/{slug}"
    return f"{url_prefix}/{slug}"


async def resolve_links(db: AsyncSession, markdown: str, tenant_id: str, url_prefix: str = "") -> str:
    """Rewrite every [[id]] and [[id|text]] token into a markdown link."""
    matches = list(LINK_PATTERN.finditer(markdown))
    if not matches:
        return markdown

    ids = list(dict.fromkeys(match.group(1) for match in matches))
    targets = await page_service.resolve_links_by_ids(db, ids, tenant_id)
    lookup: dict[str, LinkTarget] = {target.id: target for target in targets}

    missing = [page_id for page_id in ids if page_id not in lookup]
    if missing:
        logger.debug("Broken links for tenant=%s: %s", tenant_id, ", ".join(missing))

    def replace(match: re.Match) -> str:
        page_id, custom_text = match.group(1), match.group(2)
        target = lookup.get(page_id)
        if target is None:
            return f"[broken link: {page_id}]"
        text = custom_text or target.title
        return f"[{text}]({page_url(target.kind, target.slug, url_prefix)})"

    return LINK_PATTERN.sub(replace, markdown)
