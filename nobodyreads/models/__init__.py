from .page import Page
from .site_bundle import SiteBundle, SiteBundleRevision

__all__ = [
    "Page",
    "SiteBundle",
    "SiteBundleRevision",
]
