from datetime import datetime

from nobodyreads.schemas.base import CamelModel


class SiteBundleIn(CamelModel):
    html: str = ""
    css: str = ""
    js: str = ""


class SiteBundle(SiteBundleIn):
    """The active template triple for a tenant."""

    updated_at: datetime


class SiteBundleRevision(SiteBundleIn):
    revision_id: int
    created_at: datetime


class SiteEditorState(CamelModel):
    bundle: SiteBundle | None
    revisions: list[SiteBundleRevision]
    current_revision_id: int | None
