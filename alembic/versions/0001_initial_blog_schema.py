"""Initial blog schema

Revision ID: 0001_initial_blog_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

Pages, the per-tenant site bundle pointer and the site bundle revision
history. Databases created by init_db() before migrations existed can be
stamped at this revision.
"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_initial_blog_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "page",
        sa.Column("page_id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("date", sa.String(), nullable=False),
        sa.Column("updated", sa.String(), nullable=True),
        sa.Column("published", sa.Boolean(), nullable=False),
        sa.Column("scripts", sa.JSON(), nullable=True),
        sa.Column("seo", sa.JSON(), nullable=True),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("nav_label", sa.String(), nullable=True),
        sa.Column("nav_order", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("page_id", "tenant_id"),
    )
    op.create_index("idx_page_tenant_kind_slug", "page", ["tenant_id", "kind", "slug"])
    op.create_index("idx_page_tenant_published", "page", ["tenant_id", "published"])

    op.create_table(
        "site_bundle",
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("current_revision_id", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("html", sa.Text(), nullable=True),
        sa.Column("css", sa.Text(), nullable=True),
        sa.Column("js", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("tenant_id"),
    )

    op.create_table(
        "site_bundle_revision",
        sa.Column("revision_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("html", sa.Text(), nullable=False),
        sa.Column("css", sa.Text(), nullable=False),
        sa.Column("js", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("revision_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("idx_site_bundle_revision_tenant", "site_bundle_revision", ["tenant_id", "revision_id"])


def downgrade() -> None:
    op.drop_index("idx_site_bundle_revision_tenant", table_name="site_bundle_revision")
    op.drop_table("site_bundle_revision")
    op.drop_table("site_bundle")
    op.drop_index("idx_page_tenant_published", table_name="page")
    op.drop_index("idx_page_tenant_kind_slug", table_name="page")
    op.drop_table("page")
