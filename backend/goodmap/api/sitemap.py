from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session
from urllib.parse import urlencode
from xml.sax.saxutils import escape

from goodmap.core.database import get_db
from goodmap.models import Marker

router = APIRouter(tags=["sitemap"])

# Query parameter the map page reads to open a single marker
MARKER_LINK_PARAM = "marker"


def marker_page_url(base_url: str, marker_id: str) -> str:
    """Deep link that opens the map focused on one marker."""
    return f"{base_url.rstrip('/')}/?{urlencode({MARKER_LINK_PARAM: marker_id})}"


def render_sitemap(base_url: str, markers) -> str:
    """Build the urlset document with one entry per marker page."""
    entries = []
    for marker in markers:
        lastmod = marker.created_at.isoformat() if marker.created_at else ""
        entries.append(
            "  <url>\n"
            f"    <loc>{escape(marker_page_url(base_url, marker.id))}</loc>\n"
            f"    <lastmod>{lastmod}</lastmod>\n"
            "    <changefreq>daily</changefreq>\n"
            "    <priority>0.7</priority>\n"
            "  </url>\n"
        )

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        f"{''.join(entries)}"
        "</urlset>\n"
    )


@router.get("/sitemap.xml")
def sitemap(request: Request, db: Session = Depends(get_db)):
    """Sitemap of marker pages for search engines."""
    markers = db.query(Marker).order_by(Marker.created_at.asc()).all()
    base_url = request.app.state.settings.public_base_url
    return Response(content=render_sitemap(base_url, markers), media_type="application/xml")
