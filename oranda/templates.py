"""Template rendering engine for oranda.

Pages are wrapped in a Jinja2 layout. The built-in templates ship with the
package; a project can override any of them by placing a file with the same
name in its ``templates/`` directory.

Key class:
- TemplateEngine: Renders pages and the stylesheet.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .config import Config
from .funding import FundingLink
from .renderers import pygments_css
from .utils import prefixed_url

_TEMPLATES_DIR = Path(__file__).parent / "templates"
_CSS_DIR = _TEMPLATES_DIR / "css"

LIGHT_THEMES = ("light", "axolight", "cupcake")


@dataclass
class Page:
    """A rendered page waiting for its layout.

    Attributes:
        filename: Output filename relative to the dist dir.
        title: Title shown in the nav and the <title> tag.
        content: Body HTML.
        is_index: Whether this is the landing page.
    """

    filename: str
    title: str
    content: str
    is_index: bool = False


class TemplateEngine:
    """Jinja2 environment bound to one site's configuration.

    Attributes:
        config: Site configuration.
        env: Jinja2 environment.
        favicon_url: Link to the site icon, once it has been copied.
    """

    def __init__(self, config: Config):
        self.config = config
        self.env = Environment(
            loader=FileSystemLoader(
                [config.resolve("templates"), _TEMPLATES_DIR]
            ),
            autoescape=select_autoescape(["html", "xml", "html.jinja"]),
        )
        self.env.globals["url_for"] = self.url_for
        self.env.globals["project"] = config.project
        self.env.globals["theme"] = config.styles.theme
        self.env.globals["social"] = config.marketing.social
        self.env.globals["analytics"] = config.marketing.analytics
        self.favicon_url: str | None = None

    def url_for(self, path: str) -> str:
        return prefixed_url(path, self.config.build.path_prefix)

    def render_page(self, page: Page, nav: list[Page]) -> str:
        """Render a page inside the site layout.

        Args:
            page: Page to render.
            nav: All pages of the site, in navigation order.

        Returns:
            The complete HTML document.
        """
        template = self.env.get_template("layout.html.jinja")
        return template.render(
            page=page,
            nav=nav,
            page_content=Markup(page.content),
            favicon_url=self.favicon_url,
        )

    def render_funding(self, body: str, links: list[FundingLink]) -> str:
        """Render the funding page body from its markdown HTML and links."""
        template = self.env.get_template("funding.html.jinja")
        return template.render(body=Markup(body), links=links)

    def render_css(self, extra: list[str] | None = None) -> str:
        """Assemble the site stylesheet.

        Args:
            extra: Contents of user-supplied stylesheets, appended last.

        Returns:
            CSS text.
        """
        theme = "light" if self.config.styles.theme in LIGHT_THEMES else "dark"
        parts = [
            (_CSS_DIR / "base.css").read_text(encoding="utf-8"),
            (_CSS_DIR / f"{theme}.css").read_text(encoding="utf-8"),
            pygments_css(),
        ]
        parts.extend(extra or [])
        return "\n".join(parts)
