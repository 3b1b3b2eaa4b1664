"""
HTML rendering for public blog pages.

Page bodies (home, post, page, 404) are Jinja2 fragments that get wrapped
by ``layout.html``. When the tenant has an active site bundle its HTML
replaces the default header/main/footer shell: placeholders are filled in
and its CSS/JS are inlined in the document.
"""

import json
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from nobodyreads.config import settings
from nobodyreads.constants import PageKind
from nobodyreads.schemas.page import NavItem, Page, PageMeta, PageSummary
from nobodyreads.schemas.site_bundle import SiteBundle
from nobodyreads.services.link_service import page_url

TEMPLATE_DIR = Path(__file__).parent / "templates"


def format_date(value: str) -> str:
    """'2024-03-05' -> '5 Mar 2024'. Unparseable values are returned as-is."""
    try:
        parsed = date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        return value
    return f"{parsed.day} {parsed:%b %Y}"


def absolute_url(path_or_url: str) -> str:
    if path_or_url.startswith("http"):
        return path_or_url
    return f"{settings.site_url.rstrip('/')}{path_or_url}"


env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
env.filters["format_date"] = format_date
env.globals["page_url"] = page_url


# --- SEO ---


def robots_directives(seo: PageMeta | None) -> list[str]:
    if seo is None:
        return []
    directives = []
    if seo.no_index:
        directives.append("noindex")
    if seo.no_follow:
        directives.append("nofollow")
    if seo.no_ai_training:
        directives.extend(["noai", "noimageai"])
    return directives


def _json_ld(data: dict[str, Any]) -> Markup:
    # "</" would end the surrounding <script> element
    return Markup(json.dumps(data, ensure_ascii=False).replace("</", "<\\/"))


def build_structured_data(page: Page | None, url_prefix: str = "", seo: PageMeta | None = None) -> list[Markup]:
    """JSON-LD documents for a page: BlogPosting for posts, FAQPage when a FAQ is set."""
    chunks = []
    seo = seo if seo is not None else (page.seo if page else None)

    if page is not None and page.kind is PageKind.POST:
        url = absolute_url(page_url(page.kind, page.slug, url_prefix))
        article: dict[str, Any] = {
            "@context": "https://schema.org",
            "@type": "BlogPosting",
            "headline": page.title,
            "description": (seo.meta_description if seo else None) or page.excerpt,
            "datePublished": page.date,
            "url": url,
            "mainEntityOfPage": {"@type": "WebPage", "@id": url},
            "publisher": {"@type": "Organization", "name": settings.site_name, "url": settings.site_url},
        }
        if page.updated:
            article["dateModified"] = page.updated
        if page.tags:
            article["keywords"] = ", ".join(page.tags)
        if seo and seo.og_image:
            article["image"] = absolute_url(seo.og_image)
        if seo and seo.author_name:
            author = {"@type": "Person", "name": seo.author_name}
            if seo.author_expertise:
                author["description"] = seo.author_expertise
            article["author"] = author
        if seo and seo.citations:
            article["citation"] = [{"@type": "CreativeWork", "url": citation} for citation in seo.citations]
        if seo and seo.tldr:
            article["abstract"] = seo.tldr
        chunks.append(_json_ld(article))

    if seo and seo.faq:
        chunks.append(
            _json_ld(
                {
                    "@context": "https://schema.org",
                    "@type": "FAQPage",
                    "mainEntity": [
                        {
                            "@type": "Question",
                            "name": item.question,
                            "acceptedAnswer": {"@type": "Answer", "text": item.answer},
                        }
                        for item in seo.faq
                    ],
                }
            )
        )

    return chunks


# --- Site bundle shell ---

SHELL_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def render_nav(nav_items: list[NavItem], url_prefix: str = "", active_page_id: str | None = None) -> Markup:
    return Markup(
        env.get_template("_nav.html").render(
            nav_items=nav_items, url_prefix=url_prefix, active_page_id=active_page_id
        )
    )


def apply_site_shell(shell_html: str, content: str, nav_html: str, url_prefix: str = "") -> Markup:
    """
    Fill the placeholders of a site bundle's HTML.

    Content is appended after the shell when it has no {{content}} slot.
    Placeholders are filled in a single pass; substituted values are not
    scanned again.
    """
    values = {
        "content": content,
        "nav": nav_html,
        "siteTagline": str(Markup.escape(settings.site_tagline)),
        "homeHref": url_prefix or "/",
        "year": str(datetime.now(timezone.utc).year),
        "authLinksBlock": "",
        "navToggle": "",
    }
    body = SHELL_PLACEHOLDER.sub(lambda match: values.get(match.group(1), match.group(0)), shell_html)
    if "{{content}}" not in shell_html:
        body = f"{body}\n{content}"
    return Markup(body)


# --- Documents ---


def render_document(
    body: str,
    *,
    title: str,
    nav_items: list[NavItem],
    url_prefix: str = "",
    bundle: SiteBundle | None = None,
    page: Page | None = None,
    seo: PageMeta | None = None,
    description: str = "",
    pathname: str | None = None,
    og_type: str = "website",
    scripts: list[str] | None = None,
) -> str:
    """Wrap a rendered body in the full HTML document."""
    active_page_id = page.id if page else None
    nav_html = render_nav(nav_items, url_prefix, active_page_id)
    description = (seo.meta_description if seo else None) or description
    canonical_url = (seo.canonical_url if seo else None) or (absolute_url(pathname) if pathname else "")

    shell = apply_site_shell(bundle.html, body, nav_html, url_prefix) if bundle and bundle.html.strip() else None

    return env.get_template("layout.html").render(
        title=title,
        description=description,
        canonical_url=canonical_url,
        og_type=(seo.og_type if seo else None) or og_type,
        og_image=absolute_url(seo.og_image) if seo and seo.og_image else None,
        seo=seo,
        robots=robots_directives(seo),
        structured_data=build_structured_data(page, url_prefix, seo),
        site_name=settings.site_name,
        site_tagline=settings.site_tagline,
        home_href=url_prefix or "/",
        year=datetime.now(timezone.utc).year,
        nav=nav_html,
        content=Markup(body),
        shell=shell,
        bundle=bundle,
        scripts=scripts or [],
    )


def render_home(
    page: Page,
    posts: list[PageSummary],
    nav_items: list[NavItem],
    html_body: str | None = None,
    url_prefix: str = "",
    bundle: SiteBundle | None = None,
) -> str:
    """Home page: optional intro from the home page's markdown above the post listing."""
    body = env.get_template("home.html").render(
        intro=Markup(html_body) if html_body else None, posts=posts, url_prefix=url_prefix
    )
    return render_document(
        body,
        title=page.title or settings.site_name,
        nav_items=nav_items,
        url_prefix=url_prefix,
        bundle=bundle,
        page=page,
        seo=page.seo,
        description=page.excerpt,
        pathname=url_prefix or "/",
        og_type="website",
    )


def render_post(
    page: Page,
    html_body: str,
    nav_items: list[NavItem],
    url_prefix: str = "",
    bundle: SiteBundle | None = None,
) -> str:
    body = env.get_template("post.html").render(page=page, body=Markup(html_body), url_prefix=url_prefix)
    return render_document(
        body,
        title=f"{page.title} \u2014 {settings.site_name}",
        nav_items=nav_items,
        url_prefix=url_prefix,
        bundle=bundle,
        page=page,
        seo=page.seo,
        description=page.excerpt,
        pathname=page_url(page.kind, page.slug, url_prefix),
        og_type="article",
        scripts=page.scripts,
    )


def render_content_page(
    page: Page,
    html_body: str,
    nav_items: list[NavItem],
    url_prefix: str = "",
    bundle: SiteBundle | None = None,
) -> str:
    body = env.get_template("page.html").render(page=page, body=Markup(html_body), url_prefix=url_prefix)
    return render_document(
        body,
        title=f"{page.title} \u2014 {settings.site_name}",
        nav_items=nav_items,
        url_prefix=url_prefix,
        bundle=bundle,
        page=page,
        seo=page.seo,
        description=page.excerpt,
        pathname=page_url(page.kind, page.slug, url_prefix),
        scripts=page.scripts,
    )


def render_not_found(nav_items: list[NavItem], url_prefix: str = "", bundle: SiteBundle | None = None) -> str:
    body = env.get_template("not_found.html").render(url_prefix=url_prefix)
    return render_document(
        body,
        title=f"404 \u2014 {settings.site_name}",
        nav_items=nav_items,
        url_prefix=url_prefix,
        bundle=bundle,
        seo=PageMeta(no_index=True),
    )
