from sqlalchemy import JSON, Boolean, Column, Index, Integer, String, Text

from nobodyreads.constants import PageKind
from nobodyreads.database import Base


class Page(Base):
    __tablename__ = "page"

    # Stable identifier, never changes; target of [[id]] links
    page_id = Column(String, primary_key=True)
    tenant_id = Column(String, primary_key=True)

    # URL path segment, may be renamed
    slug = Column(String, nullable=False)
    title = Column(String, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    excerpt = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    date = Column(String, nullable=False)
    updated = Column(String, nullable=True)
    published = Column(Boolean, nullable=False, default=False)
    scripts = Column(JSON, nullable=True)
    seo = Column(JSON, nullable=True)
    kind = Column(String(16), nullable=False, default=PageKind.POST.value)

    # Present only for pages shown in the navigation bar
    nav_label = Column(String, nullable=True)
    nav_order = Column(Integer, nullable=True)

    __table_args__ = (
        Index("idx_page_tenant_kind_slug", "tenant_id", "kind", "slug"),
        Index("idx_page_tenant_published", "tenant_id", "published"),
    )
