"""Wiring of settings into a ready-to-use evicting resource loader."""

from __future__ import annotations

import httpx

from artcache.cache.evicting_loader import EvictingResourceLoader
from artcache.cache.file_cache import ContentAddressedFetcher
from artcache.config import Settings
from artcache.resources import DelegatingResourceLoader, default_loaders


def build_fetcher(settings: Settings, client: httpx.Client | None = None) -> ContentAddressedFetcher:
    """Create the download cache described by settings."""
    return ContentAddressedFetcher(
        settings.DOWNLOAD_DIR,
        client=client,
        timeout=settings.FETCH_TIMEOUT_SECONDS,
        user_agent=settings.USER_AGENT,
    )


def build_resource_loader(
    settings: Settings,
    fetcher: ContentAddressedFetcher,
) -> EvictingResourceLoader:
    """Create the evicting loader: plain paths, file/http(s)/package locations.

    Args:
        settings: Application settings.
        fetcher: Download cache to use for http(s) locations. The caller
            owns it and closes it once the loader is no longer used.

    Raises:
        ConfigurationError: If the target ratio is unusable.
    """
    delegate = DelegatingResourceLoader(default_loaders(fetcher))
    return EvictingResourceLoader(
        delegate,
        settings.TARGET_FREE_SPACE_RATIO,
        settings.REPOSITORY_ROOT,
    )
