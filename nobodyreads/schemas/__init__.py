from .page import DuplicateGroup, FaqItem, LinkTarget, NavItem, Page, PageMeta, PageNav, PageSave, PageSummary
from .site_bundle import SiteBundle, SiteBundleIn, SiteBundleRevision, SiteEditorState

__all__ = [
    "DuplicateGroup",
    "FaqItem",
    "LinkTarget",
    "NavItem",
    "Page",
    "PageMeta",
    "PageNav",
    "PageSave",
    "PageSummary",
    "SiteBundle",
    "SiteBundleIn",
    "SiteBundleRevision",
    "SiteEditorState",
]
