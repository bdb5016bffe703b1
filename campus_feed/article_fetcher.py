"""
Fetches the original article behind a content item for summaries and images.
"""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

import html2text
import requests

from campus_feed.constants import SOURCE_LINK_PREFIX
from util.logging_util import setup_logger

logger = setup_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

_SOURCE_LINK_RE = re.compile(re.escape(SOURCE_LINK_PREFIX) + r"(https?://\S+)")

DEFAULT_IMAGE_MARKER = "defecto"

_IMAGE_META_RES = [
    re.compile(r'<meta\s+property="og:image"\s+content="([^"]+)"', re.IGNORECASE),
    re.compile(r'<meta\s+name="twitter:image"\s+content="([^"]+)"', re.IGNORECASE),
]


@dataclass
class ArticleContent:
    text: str
    image_url: Optional[str] = None


def extract_source_link(body: str) -> Optional[str]:
    """Return the original article link from an item body, if present."""
    match = _SOURCE_LINK_RE.search(body or "")
    return match.group(1) if match else None


def html_to_text(html: str) -> str:
    """Convert an HTML page to whitespace-collapsed plain text."""
    converter = html2text.HTML2Text()
    converter.ignore_links = True
    converter.ignore_images = True
    return re.sub(r"\s+", " ", converter.handle(html)).strip()


def extract_image_url(html: str, page_url: str) -> Optional[str]:
    """Find the og:image (or twitter:image) of a page, resolved against its URL."""
    for pattern in _IMAGE_META_RES:
        match = pattern.search(html)
        if match:
            image_url = urljoin(page_url, match.group(1))
            # Site-wide default artwork is no better than our fallback images
            if DEFAULT_IMAGE_MARKER in image_url:
                return None
            return image_url
    return None


def fetch_article(url: str, timeout: float = 15.0) -> Optional[ArticleContent]:
    """
    Download an article page.

    Returns:
        ArticleContent with the page text and preview image, or None if the
        page could not be fetched.
    """
    try:
        resp = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Failed to fetch {url}: {e}")
        return None

    html = resp.text
    return ArticleContent(text=html_to_text(html), image_url=extract_image_url(html, resp.url or url))
