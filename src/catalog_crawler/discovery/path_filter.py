"""Include/exclude path rules deciding which links the crawler follows."""

import logging
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def _clean_entry(path: str) -> str:
    return path.strip().strip("/").lower()


def _has_prefix(path: str, entry: str) -> bool:
    prefix = f"/{entry}"
    return path == prefix or path.startswith(prefix + "/")


class PathFilter:
    """Decide whether a URL is eligible for traversal.

    Include paths are path-prefix rules on segment boundaries: ``product``
    matches ``/product/9`` but neither ``/products-list`` nor ``/my-product``.
    Exclude paths are substring rules: ``blog/`` rejects ``/en/blog/post-1``.
    When include paths are set, exclude paths are not consulted.
    """

    def __init__(self, include_paths: list[str] | None = None, exclude_paths: list[str] | None = None):
        self.include_paths = [p for p in map(_clean_entry, include_paths or []) if p]
        self.exclude_paths = [p for p in map(_clean_entry, exclude_paths or []) if p]

    def should_visit(self, url: str, is_first_url: bool = False) -> bool:
        """Check ``url`` (absolute URL or bare path) against the path rules.

        ``is_first_url`` is true while nothing has been visited yet; the start
        URL is then always allowed so the crawl can bootstrap.
        """
        path = (urlparse(url).path or "/").lower()

        if self.include_paths:
            if is_first_url:
                logger.debug("Allowing %s as the first URL of the crawl", path)
                return True
            if any(_has_prefix(path, entry) for entry in self.include_paths):
                return True
            logger.debug("Skipping %s (not in included paths)", path)
            return False

        if self.exclude_paths:
            if any(entry in path for entry in self.exclude_paths):
                logger.debug("Skipping %s (matches exclude paths)", path)
                return False

        return True


def should_visit(
    url: str,
    include_paths: list[str] | None = None,
    exclude_paths: list[str] | None = None,
    is_first_url: bool = False,
) -> bool:
    """Functional form of :meth:`PathFilter.should_visit`."""
    return PathFilter(include_paths, exclude_paths).should_visit(url, is_first_url)
