"""
Tenant Resolution Middleware

Resolves the tenant and public URL prefix of the current request from:
  1. X-Tenant-Id / X-Url-Prefix request headers (set by a fronting proxy
     that serves several blogs under one host, e.g. /u/alice)
  2. The configured TENANT_ID with no prefix (single-tenant self-host mode)

Sets request.state.tenant_id and request.state.url_prefix for downstream
handlers. Tenants are opaque strings; nothing is looked up here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from nobodyreads.config import settings

if TYPE_CHECKING:
    from collections.abc import Callable

    from starlette.responses import Response

logger = logging.getLogger(__name__)


def normalize_url_prefix(prefix: str | None) -> str:
    """
    Turn a header value into a prefix usable in front of absolute paths.

    Examples:
        "/u/alice/" → "/u/alice"
        "u/alice"   → "/u/alice"
        "/"         → ""
    """
    if not prefix:
        return ""
    prefix = prefix.strip().strip("/")
    return f"/{prefix}" if prefix else ""


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Attach the active tenant to request.state.

    Attributes set on request.state:
        tenant_id  (str): opaque tenant id, never empty
        url_prefix (str): "" or a path starting with "/" without trailing slash
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        tenant_id = request.headers.get(settings.tenant_header, "").strip()
        request.state.tenant_id = tenant_id or settings.tenant_id
        request.state.url_prefix = normalize_url_prefix(request.headers.get(settings.url_prefix_header))

        if tenant_id:
            logger.debug(
                "TenantMiddleware: resolved tenant_id=%s url_prefix=%r",
                request.state.tenant_id,
                request.state.url_prefix,
            )

        return await call_next(request)


def get_tenant_id(request: Request) -> str:
    """FastAPI dependency returning the tenant resolved for this request."""
    return getattr(request.state, "tenant_id", None) or settings.tenant_id


def get_url_prefix(request: Request) -> str:
    """FastAPI dependency returning the public URL prefix for this request."""
    return getattr(request.state, "url_prefix", "")
