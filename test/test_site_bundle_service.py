"""
Tests for the site bundle revision store

Covers the read strategy (pointer, legacy inline, latest revision),
appending with retention, rollback, deletion with pointer repair and
tenant isolation.
"""

import logging

import pytest
from sqlalchemy import update

from nobodyreads.exceptions import RevisionNotFoundError
from nobodyreads.models.site_bundle import SiteBundle as SiteBundleRow
from nobodyreads.schemas.site_bundle import SiteBundleIn
from nobodyreads.services import site_bundle_service

TENANT = "alice"
OTHER_TENANT = "bob"


def bundle(name: str) -> SiteBundleIn:
    return SiteBundleIn(html=f"<main>{name}</main>", css=f".{name} {{}}", js=f"console.log('{name}')")


async def save_legacy_row(db, tenant_id: str, **values) -> None:
    db.add(SiteBundleRow(tenant_id=tenant_id, **values))
    await db.commit()


class TestActiveBundle:
    """Test how the active bundle is chosen"""

    @pytest.mark.asyncio
    async def test_no_bundle(self, db):
        assert await site_bundle_service.get_active_bundle(db, TENANT) is None
        assert await site_bundle_service.list_revisions(db, TENANT) == []
        assert await site_bundle_service.get_current_revision_id(db, TENANT) is None
        assert await site_bundle_service.get_latest_revision_id(db, TENANT) is None

    @pytest.mark.asyncio
    async def test_append_becomes_active(self, db):
        """Test that saving A then B makes B current with A still in history"""
        first = await site_bundle_service.append_revision(db, bundle("a"), TENANT)
        second = await site_bundle_service.append_revision(db, bundle("b"), TENANT)

        active = await site_bundle_service.get_active_bundle(db, TENANT)
        assert active.html == "<main>b</main>"
        assert active.css == ".b {}"
        assert active.js == "console.log('b')"
        assert await site_bundle_service.get_current_revision_id(db, TENANT) == second.revision_id

        history = await site_bundle_service.list_revisions(db, TENANT)
        assert [r.revision_id for r in history] == [second.revision_id, first.revision_id]

    @pytest.mark.asyncio
    async def test_legacy_inline_bundle(self, db):
        """Test that a pre-revision bundle stored on the pointer row is still served"""
        await save_legacy_row(db, TENANT, html="<main>legacy</main>", css="body {}", js="")

        active = await site_bundle_service.get_active_bundle(db, TENANT)
        assert active.html == "<main>legacy</main>"
        assert active.css == "body {}"
        assert active.updated_at is not None

    @pytest.mark.asyncio
    async def test_first_append_moves_legacy_pointer(self, db):
        """Test that the first revision replaces the legacy inline content"""
        await save_legacy_row(db, TENANT, html="<main>legacy</main>")

        revision = await site_bundle_service.append_revision(db, bundle("new"), TENANT)

        assert await site_bundle_service.get_current_revision_id(db, TENANT) == revision.revision_id
        assert (await site_bundle_service.get_active_bundle(db, TENANT)).html == "<main>new</main>"

    @pytest.mark.asyncio
    async def test_dangling_pointer_prefers_legacy_over_latest(self, db):
        """Test the fallback order when the pointer names a missing revision"""
        await site_bundle_service.append_revision(db, bundle("latest"), OTHER_TENANT)
        await save_legacy_row(db, TENANT, current_revision_id=9999, html="<main>legacy</main>")

        assert (await site_bundle_service.get_active_bundle(db, TENANT)).html == "<main>legacy</main>"

    @pytest.mark.asyncio
    async def test_dangling_pointer_falls_back_to_latest(self, db):
        """Test that without legacy content the newest revision is served"""
        await site_bundle_service.append_revision(db, bundle("a"), TENANT)
        await site_bundle_service.append_revision(db, bundle("b"), TENANT)
        await db.execute(update(SiteBundleRow).where(SiteBundleRow.tenant_id == TENANT).values(current_revision_id=9999))
        await db.commit()

        assert (await site_bundle_service.get_active_bundle(db, TENANT)).html == "<main>b</main>"

    @pytest.mark.asyncio
    async def test_pointer_cannot_name_another_tenants_revision(self, db):
        """Test that a pointer to a foreign revision is treated as dangling"""
        foreign = await site_bundle_service.append_revision(db, bundle("foreign"), OTHER_TENANT)
        await save_legacy_row(db, TENANT, current_revision_id=foreign.revision_id)

        assert await site_bundle_service.get_active_bundle(db, TENANT) is None

    @pytest.mark.asyncio
    async def test_tenants_are_isolated(self, db):
        await site_bundle_service.append_revision(db, bundle("alice"), TENANT)
        await site_bundle_service.append_revision(db, bundle("bob"), OTHER_TENANT)

        assert (await site_bundle_service.get_active_bundle(db, TENANT)).html == "<main>alice</main>"
        assert (await site_bundle_service.get_active_bundle(db, OTHER_TENANT)).html == "<main>bob</main>"
        assert len(await site_bundle_service.list_revisions(db, TENANT)) == 1


class TestRollback:
    """Test pointing the tenant at an older revision"""

    @pytest.mark.asyncio
    async def test_rollback_keeps_history(self, db):
        """Test that rolling back to A serves A while B stays in history"""
        first = await site_bundle_service.append_revision(db, bundle("a"), TENANT)
        await site_bundle_service.append_revision(db, bundle("b"), TENANT)

        revision = await site_bundle_service.set_current_revision(db, first.revision_id, TENANT)

        assert revision.revision_id == first.revision_id
        assert (await site_bundle_service.get_active_bundle(db, TENANT)).html == "<main>a</main>"
        assert len(await site_bundle_service.list_revisions(db, TENANT)) == 2

    @pytest.mark.asyncio
    async def test_rollback_to_unknown_revision(self, db):
        current = await site_bundle_service.append_revision(db, bundle("a"), TENANT)

        with pytest.raises(RevisionNotFoundError):
            await site_bundle_service.set_current_revision(db, 9999, TENANT)

        assert await site_bundle_service.get_current_revision_id(db, TENANT) == current.revision_id

    @pytest.mark.asyncio
    async def test_rollback_to_other_tenants_revision(self, db):
        foreign = await site_bundle_service.append_revision(db, bundle("foreign"), OTHER_TENANT)

        with pytest.raises(RevisionNotFoundError):
            await site_bundle_service.set_current_revision(db, foreign.revision_id, TENANT)

        assert await site_bundle_service.get_current_revision_id(db, TENANT) is None


class TestDeleteRevision:
    """Test deleting revisions and repairing the pointer"""

    @pytest.mark.asyncio
    async def test_delete_non_current_revision(self, db):
        first = await site_bundle_service.append_revision(db, bundle("a"), TENANT)
        second = await site_bundle_service.append_revision(db, bundle("b"), TENANT)

        assert await site_bundle_service.delete_revision(db, first.revision_id, TENANT) is True
        assert await site_bundle_service.get_current_revision_id(db, TENANT) == second.revision_id

    @pytest.mark.asyncio
    async def test_delete_current_repoints_to_latest_remaining(self, db):
        """Test that deleting the current revision repoints to the newest survivor"""
        first = await site_bundle_service.append_revision(db, bundle("a"), TENANT)
        await site_bundle_service.append_revision(db, bundle("b"), TENANT)
        third = await site_bundle_service.append_revision(db, bundle("c"), TENANT)
        await site_bundle_service.set_current_revision(db, first.revision_id, TENANT)

        assert await site_bundle_service.delete_revision(db, first.revision_id, TENANT) is True

        assert await site_bundle_service.get_current_revision_id(db, TENANT) == third.revision_id
        assert (await site_bundle_service.get_active_bundle(db, TENANT)).html == "<main>c</main>"

    @pytest.mark.asyncio
    async def test_delete_last_revision_clears_pointer(self, db):
        only = await site_bundle_service.append_revision(db, bundle("a"), TENANT)

        assert await site_bundle_service.delete_revision(db, only.revision_id, TENANT) is True

        assert await site_bundle_service.get_current_revision_id(db, TENANT) is None
        assert await site_bundle_service.get_active_bundle(db, TENANT) is None

    @pytest.mark.asyncio
    async def test_delete_unknown_or_foreign_revision(self, db):
        foreign = await site_bundle_service.append_revision(db, bundle("foreign"), OTHER_TENANT)

        assert await site_bundle_service.delete_revision(db, 9999, TENANT) is False
        assert await site_bundle_service.delete_revision(db, foreign.revision_id, TENANT) is False
        assert await site_bundle_service.get_revision(db, foreign.revision_id, OTHER_TENANT) is not None

    @pytest.mark.asyncio
    async def test_revision_ids_are_never_reused(self, db):
        """Test that deleting the newest revision does not free its id"""
        await site_bundle_service.append_revision(db, bundle("a"), TENANT)
        newest = await site_bundle_service.append_revision(db, bundle("b"), TENANT)
        await site_bundle_service.delete_revision(db, newest.revision_id, TENANT)

        replacement = await site_bundle_service.append_revision(db, bundle("c"), TENANT)

        assert replacement.revision_id > newest.revision_id


class TestRetention:
    """Test pruning history to the retention limit"""

    @pytest.mark.asyncio
    async def test_append_prunes_to_fifty(self, db):
        """Test that 55 saves keep only the 50 newest revisions"""
        saved = [await site_bundle_service.append_revision(db, bundle(f"r{i}"), TENANT) for i in range(55)]

        history = await site_bundle_service.list_revisions(db, TENANT)
        assert len(history) == 50
        assert [r.revision_id for r in history] == [r.revision_id for r in reversed(saved[5:])]
        assert await site_bundle_service.get_current_revision_id(db, TENANT) == saved[-1].revision_id

    @pytest.mark.asyncio
    async def test_prune_is_per_tenant(self, db):
        for i in range(3):
            await site_bundle_service.append_revision(db, bundle(f"a{i}"), TENANT)
        await site_bundle_service.append_revision(db, bundle("b"), OTHER_TENANT)

        assert await site_bundle_service.prune_revisions(db, TENANT, keep=1) == 2
        assert len(await site_bundle_service.list_revisions(db, TENANT)) == 1
        assert len(await site_bundle_service.list_revisions(db, OTHER_TENANT)) == 1

    @pytest.mark.asyncio
    async def test_prune_nothing_to_do(self, db):
        await site_bundle_service.append_revision(db, bundle("a"), TENANT)

        assert await site_bundle_service.prune_revisions(db, TENANT) == 0

    @pytest.mark.asyncio
    async def test_prune_failure_does_not_fail_append(self, db, monkeypatch, caplog):
        """Test that a pruning error is logged and the revision is still saved"""

        async def broken_prune(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(site_bundle_service, "prune_revisions", broken_prune)

        with caplog.at_level(logging.WARNING, logger="nobodyreads.services.site_bundle_service"):
            revision = await site_bundle_service.append_revision(db, bundle("a"), TENANT)

        assert "pruning failed" in caplog.text
        assert "disk full" in caplog.text
        assert await site_bundle_service.get_current_revision_id(db, TENANT) == revision.revision_id


class TestBundleTenants:
    """Test listing tenants that have a bundle"""

    @pytest.mark.asyncio
    async def test_list_bundle_tenants(self, db):
        await site_bundle_service.append_revision(db, bundle("a"), "carol")
        await save_legacy_row(db, TENANT, html="<main>legacy</main>")

        assert await site_bundle_service.list_bundle_tenants(db) == ["alice", "carol"]
