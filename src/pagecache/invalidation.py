#!/usr/bin/env python3
"""
Cache Invalidation Hook

Clears every cached variant when site content changes. The host fires its
before-cache-update event, the hook empties the variant namespace, then the
host rebuilds its own cache.

Manual purge:
    python -m pagecache.invalidation [config/variants.defaults.yml]
"""

import logging
import sys
from typing import Any, Optional

from pagecache.cache import VariantCache
from pagecache.store import StoreUnavailable, open_store

logger = logging.getLogger(__name__)


class InvalidationHook:
    """
    Purge the whole variant namespace on content updates.

    One content change invalidates every variant of every resource; there is
    no per-fingerprint selection.
    """

    def __init__(self, cache: VariantCache):
        self.cache = cache

    def on_before_cache_update(self, event: Optional[Any] = None) -> int:
        logger.info(f"Invalidating variant cache namespace: {self.cache.namespace}")
        cleared = self.cache.clear_namespace()
        logger.info(f"Variant cache invalidated: {cleared} entries removed")
        return cleared


def main(argv=None):
    """Entry point for manual invocation."""
    from variants.config import load_config

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    argv = sys.argv[1:] if argv is None else argv
    config_path = argv[0] if argv else "config/variants.defaults.yml"

    try:
        config = load_config(config_path)
        store = open_store(config.store.backend, config.store.path)
    except (FileNotFoundError, ValueError, StoreUnavailable) as e:
        logger.error(f"Failed to invalidate cache: {e}")
        return 1

    cache = VariantCache(store, namespace=config.namespace, ttl=config.ttl_sec)
    InvalidationHook(cache).on_before_cache_update()
    return 0 if cache.stats["errors"] == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
