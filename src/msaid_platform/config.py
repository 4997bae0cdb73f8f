"""Module containing the library settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import requests

from .api import PlatformApiClient
from .cache import PlatformCache
from .cache.paths import cache_root_or_default


@dataclass(kw_only=True)
class PlatformSettings:
    """
    Settings shared by the components of a session.

    Pass an instance explicitly to the code that needs it instead of
    relying on process-wide state.

    Attributes:
        cache_root: the directory containing the cache
        debug: whether to emit debug logs
        endpoint: the API endpoint or None when not logged in
        id_token: the bearer token or None when not logged in
    """

    cache_root: Path = field(default_factory=lambda: cache_root_or_default(None))
    debug: bool = False
    endpoint: str | None = None
    id_token: str | None = None

    def __post_init__(self):
        self.cache_root = cache_root_or_default(self.cache_root)

    def set_debug(self, enabled: bool) -> None:
        """Enable or disable debug logging for the library loggers."""
        self.debug = enabled
        level = logging.DEBUG if enabled else logging.NOTSET
        for name in ("api", "results", "cache/cache", "cache/fetch", "cache/prune", "cache/view"):
            logging.getLogger(name).setLevel(level)

    def create_cache(self, *, session: requests.Session | None = None) -> PlatformCache:
        """Return a PlatformCache rooted at cache_root."""
        return PlatformCache(self.cache_root, session=session)

    def create_api_client(self, *, session: requests.Session | None = None) -> PlatformApiClient:
        """
        Return a PlatformApiClient for the configured endpoint.

        Raises:
            ValueError if endpoint or id_token are not configured.
        """
        if self.endpoint is None or self.id_token is None:
            raise ValueError("endpoint and id_token must be configured (are you logged in?)")
        return PlatformApiClient(endpoint=self.endpoint, id_token=self.id_token, session=session)
