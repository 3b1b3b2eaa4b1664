"""
Tests for wiki-link resolution
"""

from unittest.mock import AsyncMock

import pytest

from conftest import make_page
from nobodyreads.constants import PageKind
from nobodyreads.services import page_service
from nobodyreads.services.link_service import LINK_PATTERN, page_url, resolve_links

TENANT = "alice"


class TestPageUrl:
    """Test public URL construction"""

    def test_post_url(self):
        assert page_url(PageKind.POST, "hello") == "/posts/hello"
        assert page_url("post", "hello", "/u/alice") == "/u/alice/posts/hello"

    def test_page_url(self):
        assert page_url(PageKind.PAGE, "about") == "/about"
        assert page_url(PageKind.PAGE, "about", "/u/alice") == "/u/alice/about"

    def test_home_url(self):
        """Test that home is the prefix itself, or the root without one"""
        assert page_url(PageKind.HOME, "") == "/"
        assert page_url(PageKind.HOME, "ignored", "/u/alice") == "/u/alice"


class TestLinkPattern:
    """Test the [[id]] token grammar"""

    def test_matches_plain_and_custom_text(self):
        matches = [m.groups() for m in LINK_PATTERN.finditer("[[a-1]] and [[b|Some text]]")]
        assert matches == [("a-1", None), ("b", "Some text")]

    def test_ignores_invalid_identifiers(self):
        """Test that uppercase or spaced identifiers are left as plain text"""
        assert LINK_PATTERN.search("[[Not Valid]]") is None
        assert LINK_PATTERN.search("[[]]") is None


class TestResolveLinks:
    """Test rewriting tokens into markdown links"""

    @pytest.mark.asyncio
    async def test_resolves_to_current_slug_and_title(self, db):
        """Test that links follow the current slug and default to the title"""
        await page_service.upsert(
            db,
            make_page("mycelium", slug="mycelium-and-microservices", title="Mycelium networks and microservices"),
            TENANT,
        )

        result = await resolve_links(db, "See [[mycelium]].", TENANT)
        assert result == "See [Mycelium networks and microservices](/posts/mycelium-and-microservices)."

    @pytest.mark.asyncio
    async def test_custom_text(self, db):
        await page_service.upsert(db, make_page("mycelium", slug="mycelium-and-microservices"), TENANT)

        result = await resolve_links(db, "[[mycelium|Wood wide web]]", TENANT)
        assert result == "[Wood wide web](/posts/mycelium-and-microservices)"

    @pytest.mark.asyncio
    async def test_rename_keeps_links_working(self, db):
        """Test that renaming a page's slug never breaks [[id]] references"""
        await page_service.upsert(db, make_page("p1", slug="old-slug", title="Post"), TENANT)
        await page_service.upsert(db, make_page("p1", slug="new-slug", title="Post"), TENANT)

        assert await resolve_links(db, "[[p1]]", TENANT) == "[Post](/posts/new-slug)"

    @pytest.mark.asyncio
    async def test_urls_by_kind_with_prefix(self, db):
        """Test that pages, posts and home honour the URL prefix"""
        await page_service.upsert(db, make_page("about", title="About", kind=PageKind.PAGE), TENANT)
        await page_service.upsert(db, make_page("home", slug="", title="Home", kind=PageKind.HOME), TENANT)
        await page_service.upsert(db, make_page("hello", title="Hello"), TENANT)

        result = await resolve_links(db, "[[about]] [[home]] [[hello]]", TENANT, "/u/alice")
        assert result == "[About](/u/alice/about) [Home](/u/alice) [Hello](/u/alice/posts/hello)"

    @pytest.mark.asyncio
    async def test_resolving_twice_gives_same_output(self, db):
        """Test that unchanged data always resolves to the same markdown"""
        await page_service.upsert(db, make_page("p1", title="One"), TENANT)
        markdown = "[[p1]], [[p1|again]] and [[missing]]."

        first = await resolve_links(db, markdown, TENANT)
        second = await resolve_links(db, markdown, TENANT)

        assert first == second == "[One](/posts/p1), [again](/posts/p1) and [broken link: missing]."

    @pytest.mark.asyncio
    async def test_broken_links(self, db):
        """Test that unknown and draft targets degrade to a visible marker"""
        await page_service.upsert(db, make_page("draft", published=False), TENANT)

        result = await resolve_links(db, "[[nonexistent]] and [[draft|a draft]]", TENANT)
        assert result == "[broken link: nonexistent] and [broken link: draft]"

    @pytest.mark.asyncio
    async def test_other_tenants_pages_are_broken(self, db):
        await page_service.upsert(db, make_page("theirs"), "bob")

        assert await resolve_links(db, "[[theirs]]", TENANT) == "[broken link: theirs]"

    @pytest.mark.asyncio
    async def test_repeated_tokens_resolved_once(self, db, monkeypatch):
        """Test that repeated identifiers are batched into a single lookup"""
        await page_service.upsert(db, make_page("p1", title="One"), TENANT)
        spy = AsyncMock(wraps=page_service.resolve_links_by_ids)
        monkeypatch.setattr(page_service, "resolve_links_by_ids", spy)

        result = await resolve_links(db, "[[p1]] [[p1|again]] [[p1]]", TENANT)

        assert result == "[One](/posts/p1) [again](/posts/p1) [One](/posts/p1)"
        spy.assert_awaited_once()
        assert spy.await_args.args[1] == ["p1"]

    @pytest.mark.asyncio
    async def test_no_tokens_skip_the_database(self):
        """Test that markdown without tokens is returned untouched"""
        db = AsyncMock()
        markdown = "# Title\n\nNo [links](/here) at all."

        assert await resolve_links(db, markdown, TENANT) == markdown
        db.execute.assert_not_awaited()
