"""Registry of site-specific content extractors."""

from catalog_crawler.extractor.base import BaseContentExtractor
from catalog_crawler.extractor.enfold import EnfoldExtractor
from catalog_crawler.extractor.woocommerce import WooCommerceExtractor


class ExtractorRegistry:
    """Registry of content extractors, selected by configured site name."""

    _extractors: dict[str, type[BaseContentExtractor]] = {
        EnfoldExtractor.name: EnfoldExtractor,
        WooCommerceExtractor.name: WooCommerceExtractor,
    }

    @classmethod
    def register(cls, extractor_cls: type[BaseContentExtractor]) -> None:
        """Register a new extractor class under its ``name``."""
        cls._extractors[extractor_cls.name] = extractor_cls

    @classmethod
    def get(cls, name: str, **kwargs) -> BaseContentExtractor | None:
        """Instantiate the extractor registered as ``name``."""
        extractor_cls = cls._extractors.get(name.lower())
        return extractor_cls(**kwargs) if extractor_cls else None

    @classmethod
    def list_extractors(cls) -> list[type[BaseContentExtractor]]:
        """List all registered extractor classes."""
        return list(cls._extractors.values())
