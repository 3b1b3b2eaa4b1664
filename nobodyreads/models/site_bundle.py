"""
Site bundle tables.

``site_bundle`` holds one row per tenant with the pointer to the active
revision. Its html/css/js columns predate revision history and are only read
as a fallback for bundles written before versioning existed.

``site_bundle_revision`` holds immutable snapshots. Revision ids are never
reused, so they order revisions by creation.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from nobodyreads.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SiteBundle(Base):
    __tablename__ = "site_bundle"

    tenant_id = Column(String, primary_key=True)
    current_revision_id = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Legacy inline content (pre-revisions)
    html = Column(Text, nullable=True)
    css = Column(Text, nullable=True)
    js = Column(Text, nullable=True)


class SiteBundleRevision(Base):
    __tablename__ = "site_bundle_revision"

    revision_id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String, nullable=False)
    html = Column(Text, nullable=False, default="")
    css = Column(Text, nullable=False, default="")
    js = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_site_bundle_revision_tenant", "tenant_id", "revision_id"),
        # AUTOINCREMENT keeps SQLite from reusing the id of a deleted newest row
        {"sqlite_autoincrement": True},
    )
