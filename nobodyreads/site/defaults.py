"""
Default site bundle.

A fresh tenant starts from DEFAULT_SITE_TEMPLATE and DEFAULT_SITE_CSS. The
template is an HTML body fragment with these placeholders:

    {{content}}         rendered page body
    {{nav}}             navigation links
    {{siteTagline}}     site tagline
    {{homeHref}}        link to the blog's home page
    {{year}}            current year
    {{authLinksBlock}}  owner links (empty on public pages)
    {{navToggle}}       mobile menu toggle (empty on public pages)
"""

import re

# Matches the /site.js include of older default templates
SITE_SCRIPT_TAG_RE = re.compile(r"\n?<script\s+src=[\"']/site\.js[\"']\s+defer></script>\n?")

WORDMARK = (
    '<span class="wordmark wordmark--{size}">'
    'nobody_reads<span class="dot" aria-hidden="true">.</span><span class="me">me</span>'
    "</span>"
)

DEFAULT_SITE_TEMPLATE = f"""
<header class="site-header">
  <div class="container">
    <div class="nav-bar">
      <a class="site-logo" href="{{{{homeHref}}}}">
        {WORDMARK.format(size="md")}
      </a>
      <nav class="site-nav-inline" aria-label="Main">
        {{{{nav}}}}
      </nav>
      {{{{authLinksBlock}}}}
      <div class="nav-actions">
        {{{{navToggle}}}}
      </div>
    </div>
    <div class="site-hero">
      <h1 class="hero-title">
        {WORDMARK.format(size="xl")}
      </h1>
      <p class="hero-tagline">{{{{siteTagline}}}}</p>
    </div>
  </div>
</header>

<main class="container">
  {{{{content}}}}
</main>

<footer class="site-footer">
  <div class="container">
    <p>
      &copy; {{{{year}}}}
      {WORDMARK.format(size="md")}
    </p>
  </div>
</footer>
"""

DEFAULT_SITE_CSS = """
:root {
  color-scheme: light dark;
  --bg: #ffffff;
  --text: #111111;
  --muted: #5a5a5a;
  --border: #e6e6e6;
  --accent: #6c5ce7;
  --font: system-ui, -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
  --font-mono: ui-monospace, SFMono-Regular, Menlo, Monaco, Consolas, "Liberation Mono", monospace;
}

@media (prefers-color-scheme: dark) {
  :root {
    --bg: #0f0f12;
    --text: #f5f5f7;
    --muted: #a0a0a8;
    --border: #24242a;
  }
}

* { box-sizing: border-box; }

body {
  margin: 0;
  font-family: var(--font);
  color: var(--text);
  background: var(--bg);
  line-height: 1.6;
}

a { color: var(--accent); text-decoration: none; }
a:hover { text-decoration: underline; }

.container {
  max-width: 900px;
  margin: 0 auto;
  padding: 2rem 1.5rem;
}

.site-header { border-bottom: 1px solid var(--border); }
.site-hero { margin-top: 1.5rem; }

.site-footer {
  border-top: 1px solid var(--border);
  color: var(--muted);
  font-size: 0.9rem;
}

.site-nav-inline a {
  color: var(--muted);
  margin-right: 1rem;
}

.site-nav-inline a.active {
  color: var(--text);
  font-weight: 600;
}

main h1, main h2, main h3 { line-height: 1.25; }
"""
