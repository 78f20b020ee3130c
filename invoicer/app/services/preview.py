"""
HTML preview rendering for generated invoices.

Performs a lossy DOCX -> HTML conversion with mammoth. On top of
mammoth's default style map:

- Title paragraphs                 -> <h1>
- List Bullet / List Number styles -> <ul>/<ol> with <li>
- underline                        -> <u>

Images, headers, footers and styling beyond what mammoth maps are
dropped. Hyperlinks keep their target only for http, https, mailto and
in-document anchors. The output is a fragment for inline display, not an
export.

The conversion is a pure function of the document bytes.
"""

from __future__ import annotations

import io
import logging
import re
from html import unescape
from urllib.parse import urlsplit

import mammoth

from invoicer.app.errors import ConversionError

logger = logging.getLogger(__name__)

STYLE_MAP = """
p[style-name='Title'] => h1:fresh
p[style-name='List Bullet'] => ul > li:fresh
p[style-name='List Number'] => ol > li:fresh
u => u
"""

SAFE_LINK_SCHEMES = frozenset({"http", "https", "mailto"})

_LINK_HREF = re.compile(r'<a href="([^"]*)"')


def _is_safe_href(href: str) -> bool:
    target = unescape(href).strip()
    if target.startswith("#"):
        return True
    try:
        scheme = urlsplit(target).scheme
    except ValueError:
        return False
    return scheme.lower() in SAFE_LINK_SCHEMES


def _strip_unsafe_links(html: str) -> str:
    def replace(match: re.Match) -> str:
        if _is_safe_href(match.group(1)):
            return match.group(0)
        return "<a"

    return _LINK_HREF.sub(replace, html)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def render_preview(document_bytes: bytes) -> str:
    """
    Convert DOCX bytes into an HTML fragment.

    Raises:
        ConversionError: if the bytes are not a readable DOCX document.
    """
    try:
        result = mammoth.convert_to_html(
            io.BytesIO(document_bytes),
            style_map=STYLE_MAP,
        )
    except Exception as exc:
        raise ConversionError(
            f"Preview conversion failed: {exc.__class__.__name__}: {exc}"
        ) from exc

    for message in result.messages:
        logger.debug(
            "preview_conversion_message",
            extra={"type": message.type, "detail": message.message},
        )

    html = _strip_unsafe_links(result.value)
    logger.debug("preview_rendered", extra={"html_chars": len(html)})
    return html
