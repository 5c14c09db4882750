from typing import Protocol

from bulletin.domain.entities import Newsletter


class RendererPort(Protocol):
    def render(self, newsletter: Newsletter) -> str:
        """Render a categorized newsletter to an HTML email body."""
        ...
