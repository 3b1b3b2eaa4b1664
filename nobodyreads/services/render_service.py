import markdown
from sqlalchemy.ext.asyncio import AsyncSession

from nobodyreads.exceptions import MarkdownRenderError
from nobodyreads.services.link_service import resolve_links

# GitHub-flavoured extras; single newlines stay soft breaks
MD_EXTENSIONS = [
    "extra",
    "sane_lists",
    "pymdownx.tilde",
    "pymdownx.magiclink",
    "pymdownx.tasklist",
]
MD_EXTENSION_CONFIGS = {
    "pymdownx.tilde": {"subscript": False},
    "pymdownx.tasklist": {"custom_checkbox": False},
}


def _markdown_renderer() -> markdown.Markdown:
    return markdown.Markdown(extensions=MD_EXTENSIONS, extension_configs=MD_EXTENSION_CONFIGS)


md = _markdown_renderer()


def render_markdown(content: str) -> str:
    """Render markdown to HTML. Pure and synchronous."""
    html = md.reset().convert(content)
    if not isinstance(html, str):
        raise MarkdownRenderError()
    return html


async def render_page_content(db: AsyncSession, content: str, tenant_id: str, url_prefix: str = "") -> str:
    """Resolve [[id]] links in markdown and render the result to HTML."""
    resolved = await resolve_links(db, content, tenant_id, url_prefix)
    return render_markdown(resolved)
