"""Event dispatch between the host CMS and the variant cache."""

from __future__ import annotations

import logging
from typing import Any, Optional

from pagecache.cache import VariantCache
from pagecache.circuit_breaker import CircuitBreakerStore
from pagecache.invalidation import InvalidationHook
from pagecache.store import KeyValueStore, open_store
from variants.classifier import ClientClassifier, VariantResolver
from variants.config import VariantConfig
from variants.gate import PageLoadEvent, RenderGate
from variants.renderer import Renderer

logger = logging.getLogger(__name__)

PAGE_LOAD = "OnLoadWebDocument"
BEFORE_CACHE_UPDATE = "OnBeforeCacheUpdate"


class VariantPlugin:
    def __init__(self, gate: RenderGate, hook: InvalidationHook) -> None:
        self.gate = gate
        self.hook = hook

    def handle(self, event_name: str, event: Optional[Any] = None) -> Any:
        if isinstance(event, PageLoadEvent):
            level = event.context.log_level(self.gate.config.log_level)
        else:
            level = self.gate.config.log_level
        logger.log(level, "Event %s", event_name)

        if event_name == PAGE_LOAD:
            return self.gate.handle(event)
        if event_name == BEFORE_CACHE_UPDATE:
            return self.hook.on_before_cache_update(event)
        return None


def build_plugin(
    config: VariantConfig,
    renderer: Renderer,
    classifier: Optional[ClientClassifier] = None,
    store: Optional[KeyValueStore] = None,
) -> VariantPlugin:
    if store is None:
        store = open_store(config.store.backend, config.store.path)
    cache = VariantCache(
        store,
        namespace=config.namespace,
        ttl=config.ttl_sec,
        breaker=CircuitBreakerStore(config.cb_store.fails, config.cb_store.ttl_sec),
    )
    gate = RenderGate(config, cache, VariantResolver(config, classifier), renderer)
    return VariantPlugin(gate, InvalidationHook(cache))
