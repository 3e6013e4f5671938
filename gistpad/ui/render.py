"""HTML rendering of page view models."""

from __future__ import annotations

from jinja2 import Environment, PackageLoader, select_autoescape

from gistpad.utils.dates import format_long, format_relative
from gistpad.utils.languages import display_language, highlight_language
from gistpad.utils.markdown import render_markdown

_env = Environment(
    loader=PackageLoader("gistpad.ui", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["markdown"] = render_markdown
_env.filters["long_date"] = format_long
_env.filters["relative_date"] = format_relative
_env.filters["language"] = display_language
_env.filters["highlight"] = highlight_language


def render_template(name: str, **context) -> str:
    return _env.get_template(name).render(**context)
