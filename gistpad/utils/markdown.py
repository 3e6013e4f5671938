"""Minimal markdown for comments: bold, italic, inline code, line breaks."""

from __future__ import annotations

import re

from markupsafe import Markup, escape

_RULES = [
    (re.compile(r"\*\*(.*?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.*?)\*"), r"<em>\1</em>"),
    (re.compile(r"`(.*?)`"), r'<code class="inline-code">\1</code>'),
]


def render_markdown(content: str) -> Markup:
    """Escape first, then apply the inline rules, so user HTML never survives."""
    html = str(escape(content))
    for pattern, replacement in _RULES:
        html = pattern.sub(replacement, html)
    return Markup(html.replace("\n", "<br>"))
