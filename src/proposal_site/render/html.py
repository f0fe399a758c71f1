"""
HTML renderer.

Serializes ``Page`` trees and the ``Index`` to HTML through Jinja2
templates. A theme directory can override any of the bundled templates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, StrictUndefined, select_autoescape

from proposal_site.index import Index
from proposal_site.models import LABEL
from proposal_site.nodes import Crumb, Page

TEMPLATE_DIR = Path(__file__).parent / "templates"

_SAFE_SCHEMES = ("http:", "https:", "mailto:")


def safe_href(href: str | None) -> str:
    """Allow web, mail and relative links; neutralize anything else."""
    if not href:
        return "#"
    value = href.strip()
    scheme, sep, _ = value.partition(":")
    if sep and "/" not in scheme and not value.lower().startswith(_SAFE_SCHEMES):
        return "#"
    return value


class HtmlRenderer:
    """Turn page trees into HTML documents.

    Features:
        - Bundled templates: ``page.html``, ``index.html`` on top of ``base.html``
        - Recursive node macros in ``macros.html`` dispatching on ``kind``
        - Optional theme directory searched before the bundled templates
        - Autoescaping for all node text; link targets pass through ``safe_href``

    Tags:
        - renderer
        - template
        - jinja2

    Doc-Types:
        - API_REFERENCE (section: "Renderers Module", priority: 7)
    """

    def __init__(self, theme_dir: Path | None = None, site_title: str = "Index"):
        self.site_title = site_title

        loaders = [FileSystemLoader(str(TEMPLATE_DIR))]
        if theme_dir is not None:
            loaders.insert(0, FileSystemLoader(str(theme_dir)))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters["safe_href"] = safe_href
        self.env.globals["label"] = LABEL

    def render_page(self, page: Page) -> str:
        return self._render(
            "page.html",
            page=page,
            title=page.title,
            breadcrumbs=page.breadcrumbs,
            color_scheme=page.color_scheme,
        )

    def render_index(self, index: Index, color_scheme: str = "auto") -> str:
        return self._render(
            "index.html",
            index=index,
            title=self.site_title,
            breadcrumbs=(Crumb(self.site_title),),
            color_scheme=color_scheme,
        )

    def _render(self, template_name: str, **context: Any) -> str:
        template = self.env.get_template(template_name)
        return template.render(site_title=self.site_title, **context)


__all__ = ["HtmlRenderer", "TEMPLATE_DIR", "safe_href"]
