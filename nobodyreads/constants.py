"""Shared constants for tenants, page kinds and URL patterns."""

import enum
import re

# Sentinel tenant_id used in single-user (self-hosted) mode
DEFAULT_TENANT_ID = "_default"

# Number of site bundle revisions kept per tenant
REVISION_RETENTION = 50

# Slugs and wiki-link identifiers share one character class
SLUG_PATTERN = r"[a-z0-9-]+"
SLUG_RE = re.compile(rf"^{SLUG_PATTERN}$")

# X-Robots-Tag value asking crawlers not to train on a page
NO_AI_TRAINING_ROBOTS = "noai, noimageai"


class PageKind(str, enum.Enum):
    HOME = "home"
    PAGE = "page"
    POST = "post"
