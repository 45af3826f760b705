"""Rendering of post bodies written with the rich-text editor.

Post content is stored as HTML exactly as the author sent it, so it is
cleaned with nh3 before Streamlit is allowed to render it as HTML.
"""
import html

import nh3

ALLOWED_TAGS = {
    "a", "b", "blockquote", "br", "code", "em", "h1", "h2", "h3", "h4",
    "hr", "i", "img", "li", "ol", "p", "pre", "s", "span", "strong", "u", "ul",
}

ALLOWED_ATTRIBUTES = {
    "a": {"href", "title"},
    "img": {"src", "alt", "width", "height"},
}

URL_SCHEMES = {"http", "https", "mailto"}


def sanitize_html(content: str) -> str:
    """Keep the editor's formatting, drop scripts, handlers and unsafe URLs."""
    return nh3.clean(
        content or "",
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        url_schemes=URL_SCHEMES,
    )


def to_plain_text(content: str, max_length: int = 80) -> str:
    """Strip every tag for one-line previews."""
    text = " ".join(html.unescape(nh3.clean(content or "", tags=set())).split())
    if len(text) > max_length:
        return text[:max_length - 1].rstrip() + "…"
    return text
