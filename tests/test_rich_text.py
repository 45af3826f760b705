"""
Tests for cleaning rich-text post bodies before they are rendered as HTML.
"""

from utils.rich_text import sanitize_html, to_plain_text


def test_keeps_editor_formatting():
    content = '<p>Great <strong>coffee</strong> and <a href="https://example.com">cake</a></p>'

    cleaned = sanitize_html(content)

    assert "<strong>coffee</strong>" in cleaned
    assert 'href="https://example.com"' in cleaned
    assert cleaned.startswith("<p>")


def test_strips_scripts_and_event_handlers():
    content = '<p onclick="steal()">Hi<script>alert(1)</script></p><img src="https://img.example/a.png" onerror="steal()">'

    cleaned = sanitize_html(content)

    assert "script" not in cleaned
    assert "alert" not in cleaned
    assert "onclick" not in cleaned
    assert "onerror" not in cleaned
    assert 'src="https://img.example/a.png"' in cleaned


def test_drops_javascript_urls():
    cleaned = sanitize_html('<a href="javascript:alert(1)">click</a>')

    assert "javascript" not in cleaned
    assert "click" in cleaned


def test_plain_text_passes_through():
    assert sanitize_html("Great coffee") == "Great coffee"
    assert sanitize_html(None) == ""


def test_plain_text_preview():
    content = "<p>Fish &amp; chips</p>\n<p>near   the <b>station</b></p>"

    assert to_plain_text(content) == "Fish & chips near the station"
    assert to_plain_text("<p>" + "x" * 100 + "</p>", max_length=10) == "x" * 9 + "…"
