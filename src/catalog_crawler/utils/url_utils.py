"""URL manipulation utilities."""

import logging
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Reduce a URL to its dedup key.

    The key is ``scheme://host/path`` lowercased, with query string, fragment
    and trailing slashes removed. A URL that cannot be parsed as an absolute
    URL is returned unchanged.
    """
    try:
        parsed = urlparse(url.strip())
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("not an absolute URL")
    except ValueError as e:
        logger.warning("Could not normalize URL %r: %s", url, e)
        return url
    key = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
    return key.lower().rstrip("/")


def is_same_domain(url1: str, url2: str) -> bool:
    """Check if two URLs are on the same host."""
    return (urlparse(url1).hostname or "") == (urlparse(url2).hostname or "")


def make_absolute(base_url: str, href: str) -> str:
    """Convert a potentially relative URL to absolute, without fragment."""
    return urlparse(urljoin(base_url, href))._replace(fragment="").geturl()


def is_page_url(url: str) -> bool:
    """Check if a URL looks like an HTML page (not an asset or a non-web scheme)."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False
    path = parsed.path.lower()

    skip_extensions = {
        ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico", ".webp",
        ".css", ".js", ".woff", ".woff2", ".ttf", ".eot",
        ".pdf", ".zip", ".tar", ".gz",
        ".xml", ".json", ".mp4", ".mp3",
    }

    for ext in skip_extensions:
        if path.endswith(ext):
            return False

    skip_paths = {
        "/wp-content/", "/wp-includes/", "/wp-json/",
        "/assets/", "/static/", "/images/", "/cart/", "/checkout/",
    }

    for skip in skip_paths:
        if skip in path:
            return False

    return True
