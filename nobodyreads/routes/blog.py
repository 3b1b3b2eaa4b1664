"""
Public Blog Routes

GET /                  → home page with post listing
GET /posts/{slug}      → blog post
GET /{slug}            → static page (about, uses, ...); falls through when absent
GET /api/posts         → JSON list of published post summaries
GET /api/posts/{slug}  → JSON post
anything else          → 404 page with navigation

``resolve_request`` maps a (method, pathname) pair for one tenant to a
BlogResponse and knows nothing about HTTP frameworks. Independent lookups
run concurrently, each on its own session from the injected factory.
The FastAPI catch-all route at the bottom adapts it to HTTP.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse
from sqlalchemy.ext.asyncio import async_sessionmaker

from nobodyreads import templating
from nobodyreads.constants import NO_AI_TRAINING_ROBOTS, SLUG_PATTERN, PageKind
from nobodyreads.database import get_session_factory
from nobodyreads.middleware.tenant import get_tenant_id, get_url_prefix
from nobodyreads.schemas.page import Page
from nobodyreads.services import page_service, site_bundle_service
from nobodyreads.services.render_service import render_page_content

router = APIRouter(tags=["Blog"])
logger = logging.getLogger(__name__)

POST_PATH = re.compile(rf"^/posts/({SLUG_PATTERN})$")
PAGE_PATH = re.compile(rf"^/({SLUG_PATTERN})$")
API_POSTS_PATH = "/api/posts"
API_POST_PATH = re.compile(rf"^/api/posts/({SLUG_PATTERN})$")
PUBLIC_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]


@dataclass
class BlogResponse:
    status_code: int
    body: Any
    media_type: str = "html"
    no_ai_training: bool = False


def _no_ai_training(page: Page) -> bool:
    return bool(page.seo and page.seo.no_ai_training)


async def _query(sessions: async_sessionmaker, fn, *args):
    """Run a store function on a fresh session."""
    async with sessions() as db:
        return await fn(db, *args)


async def _active_bundle(sessions: async_sessionmaker, tenant_id: str, enabled: bool):
    if not enabled:
        return None
    return await _query(sessions, site_bundle_service.get_active_bundle, tenant_id)


async def _render(sessions: async_sessionmaker, content: str, tenant_id: str, url_prefix: str) -> str:
    async with sessions() as db:
        return await render_page_content(db, content, tenant_id, url_prefix)


async def resolve_request(
    sessions: async_sessionmaker,
    method: str,
    pathname: str,
    tenant_id: str,
    url_prefix: str = "",
    bundle_lookup: bool = True,
) -> BlogResponse:
    """Resolve a public request path for a tenant. Storage errors propagate."""
    is_get = method.upper() in ("GET", "HEAD")

    # Home page
    if pathname == "/" and is_get:
        page, posts, nav_items, bundle = await asyncio.gather(
            _query(sessions, page_service.get_published_by_kind, PageKind.HOME, tenant_id),
            _query(sessions, page_service.list_published_posts, tenant_id),
            _query(sessions, page_service.list_nav_items, tenant_id),
            _active_bundle(sessions, tenant_id, bundle_lookup),
        )
        if page is None:
            return BlogResponse(404, templating.render_not_found(nav_items, url_prefix, bundle))

        html_body = await _render(sessions, page.content, tenant_id, url_prefix) if page.content.strip() else None
        return BlogResponse(
            200,
            templating.render_home(page, posts, nav_items, html_body, url_prefix, bundle),
            no_ai_training=_no_ai_training(page),
        )

    # Blog post
    post_match = POST_PATH.match(pathname)
    if post_match and is_get:
        page, nav_items, bundle = await asyncio.gather(
            _query(sessions, page_service.get_published_by_slug, post_match.group(1), PageKind.POST, tenant_id),
            _query(sessions, page_service.list_nav_items, tenant_id),
            _active_bundle(sessions, tenant_id, bundle_lookup),
        )
        if page is None:
            return BlogResponse(404, templating.render_not_found(nav_items, url_prefix, bundle))

        html_body = await _render(sessions, page.content, tenant_id, url_prefix)
        return BlogResponse(
            200,
            templating.render_post(page, html_body, nav_items, url_prefix, bundle),
            no_ai_training=_no_ai_training(page),
        )

    # Static page
    page_match = PAGE_PATH.match(pathname)
    if page_match and is_get:
        page, nav_items, bundle = await asyncio.gather(
            _query(sessions, page_service.get_published_by_slug, page_match.group(1), PageKind.PAGE, tenant_id),
            _query(sessions, page_service.list_nav_items, tenant_id),
            _active_bundle(sessions, tenant_id, bundle_lookup),
        )
        if page is not None:
            html_body = await _render(sessions, page.content, tenant_id, url_prefix)
            return BlogResponse(
                200,
                templating.render_content_page(page, html_body, nav_items, url_prefix, bundle),
                no_ai_training=_no_ai_training(page),
            )
        # Fall through to the API routes and the 404 page

    # JSON API
    if pathname == API_POSTS_PATH and is_get:
        posts = await _query(sessions, page_service.list_published_posts, tenant_id)
        return BlogResponse(200, [post.model_dump(mode="json", by_alias=True) for post in posts], media_type="json")

    api_post_match = API_POST_PATH.match(pathname)
    if api_post_match and is_get:
        post = await _query(
            sessions, page_service.get_published_by_slug, api_post_match.group(1), PageKind.POST, tenant_id
        )
        if post is None:
            return BlogResponse(404, {"error": "Post not found"}, media_type="json")
        return BlogResponse(200, post.model_dump(mode="json", by_alias=True, exclude_none=True), media_type="json")

    # Not found
    nav_items, bundle = await asyncio.gather(
        _query(sessions, page_service.list_nav_items, tenant_id),
        _active_bundle(sessions, tenant_id, bundle_lookup),
    )
    logger.debug("No route for %s %s (tenant=%s)", method, pathname, tenant_id)
    return BlogResponse(404, templating.render_not_found(nav_items, url_prefix, bundle))


def to_http_response(result: BlogResponse) -> HTMLResponse | JSONResponse:
    headers = {"X-Robots-Tag": NO_AI_TRAINING_ROBOTS} if result.no_ai_training else None
    if result.media_type == "json":
        return JSONResponse(content=result.body, status_code=result.status_code, headers=headers)
    return HTMLResponse(content=result.body, status_code=result.status_code, headers=headers)


# Registered last so admin and health routes take precedence. Non-GET
# requests reach resolve_request too and get the 404 page.
@router.api_route("/{path:path}", methods=PUBLIC_METHODS, include_in_schema=False)
async def serve_blog(
    request: Request,
    sessions: async_sessionmaker = Depends(get_session_factory),
    tenant_id: str = Depends(get_tenant_id),
    url_prefix: str = Depends(get_url_prefix),
):
    result = await resolve_request(sessions, request.method, request.url.path, tenant_id, url_prefix)
    return to_http_response(result)
