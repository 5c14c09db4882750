"""Newsletter HTML renderer backed by a Jinja2 template."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from bulletin.domain.entities import SLOT_CATEGORIES, Newsletter

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class JinjaNewsletterRenderer:
    """RendererPort implementation. Categories render in slot order."""

    def __init__(
        self,
        templates_dir: Path = TEMPLATES_DIR,
        template_name: str = "newsletter.html",
    ) -> None:
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html"]),
        )
        self.template_name = template_name

    def render(self, newsletter: Newsletter) -> str:
        template = self.env.get_template(self.template_name)
        return template.render(
            title=newsletter.title,
            number=newsletter.number,
            header_text=newsletter.header_text,
            sections=[
                (category, newsletter.categorized_news.get(category, []))
                for category in SLOT_CATEGORIES
            ],
        )
