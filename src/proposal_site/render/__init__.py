"""
Renderers for proposal-site.

``PageRenderer`` builds the page node tree for a document; ``HtmlRenderer``
serializes page trees and the index to HTML.
"""

from proposal_site.render.html import HtmlRenderer, safe_href
from proposal_site.render.page import PageRenderer, RenderedPage, build_toc

__all__ = [
    "HtmlRenderer",
    "PageRenderer",
    "RenderedPage",
    "build_toc",
    "safe_href",
]
