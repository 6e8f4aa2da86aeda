from __future__ import annotations

from functools import lru_cache
from typing import Any

from jinja2 import Environment, PackageLoader, select_autoescape


@lru_cache(maxsize=1)
def _environment() -> Environment:
    # Autoescaping turns & < > " ' into entities before content is embedded.
    return Environment(
        loader=PackageLoader("pasteshare", "templates"),
        autoescape=select_autoescape(["html"]),
    )


def render_paste_page(paste_id: str, view: dict[str, Any]) -> str:
    """Render the HTML page for an already-accessed paste view."""
    template = _environment().get_template("paste.html")
    return template.render(
        paste_id=paste_id,
        content=view["content"],
        remaining_views=view["remaining_views"],
        expires_at=view["expires_at"],
    )
