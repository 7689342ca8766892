#!/usr/bin/env python3
"""
Render Gate — cache-or-render decision per page request

Takes a page-load event, resolves the variant, and serves the page:

  Alternates missing  → do nothing, host renders as usual
  Cached, no refresh  → serve cached payload, renderer not called
  Miss or refresh     → render fresh (host cache off), store, serve
  Anything fails      → restore the resource, host renders as usual

This is what the plugin calls on every page load.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from pagecache.cache import VariantCache
from pagecache.fingerprint import FingerprintBuilder
from variants.classifier import ConfigurationIncomplete, VariantResolver
from variants.config import VariantConfig
from variants.context import RequestContext
from variants.observability import RenderDecisionRecord
from variants.renderer import Renderer
from variants.resource import TEMPLATE, Resource, host_cache_disabled

logger = logging.getLogger(__name__)

HIT = "hit"
MISS = "miss"
BYPASS = "bypass"
ABORTED = "aborted"
FAILED = "failed"


@dataclass
class PageLoadEvent:
    resource: Resource
    context: RequestContext = field(default_factory=RequestContext)
    request_meta: Mapping[str, Any] = field(default_factory=dict)
    # Request-scoped values readable by downstream templates
    placeholders: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GateOutcome:
    state: str
    variant: Optional[str] = None
    fingerprint: Optional[str] = None
    content: Optional[str] = None
    rendered: bool = False

    @property
    def served(self) -> bool:
        return self.state in (HIT, MISS, BYPASS)


class RenderGate:
    """
    Variant-aware cache-or-render pipeline.

    1. Resolve the variant (override, else client detection)
    2. Fingerprint the (resource, variant) pair
    3. Switch the resource to the variant's template
    4. On refresh or miss → render with the host cache disabled, then store
    5. On hit → reuse the cached payload
    6. Hand the payload to the resource as its response content
    """

    def __init__(
        self,
        config: VariantConfig,
        cache: VariantCache,
        resolver: VariantResolver,
        renderer: Renderer,
        fingerprints: Optional[FingerprintBuilder] = None,
    ):
        self.config = config
        self.cache = cache
        self.resolver = resolver
        self.renderer = renderer
        self.fingerprints = fingerprints or FingerprintBuilder()

    def handle(self, event: PageLoadEvent) -> GateOutcome:
        """
        Main entry point. Never raises: on any failure the resource is left
        the way the host handed it over and the host renders normally.
        """
        started = time.monotonic()
        resource = event.resource
        context = event.context
        level = context.log_level(self.config.log_level)
        original_template = resource.get_attribute(TEMPLATE)
        record = RenderDecisionRecord(
            resource_id=str(resource.resource_id),
            outcome=ABORTED,
            override=context.template_override,
            refresh=context.refresh,
        )

        try:
            outcome = self._serve(event, record, level)
        except ConfigurationIncomplete as e:
            logger.warning("Variant switching skipped: %s", e)
            record.reason = str(e)
            outcome = GateOutcome(ABORTED)
        except Exception as e:  # noqa: BLE001
            logger.exception("Render gate error for resource %s", resource.resource_id)
            resource.set_attribute(TEMPLATE, original_template)
            event.placeholders[self.config.placeholder] = self.config.default_variant
            record.reason = f"{type(e).__name__}: {e}"
            outcome = GateOutcome(FAILED, variant=record.variant, fingerprint=record.fingerprint)

        record.outcome = outcome.state
        record.latency_ms_total = round((time.monotonic() - started) * 1000, 3)
        self._log_decision(record, level)
        return outcome

    def _serve(self, event: PageLoadEvent, record: RenderDecisionRecord, level: int) -> GateOutcome:
        resource = event.resource
        context = event.context

        resolution = self.resolver.resolve(resource, context, event.request_meta)
        record.variant = resolution.variant
        record.method = resolution.method
        event.placeholders[self.config.placeholder] = resolution.variant

        fingerprint = self.fingerprints.fingerprint(resource.resource_id, resolution.variant)
        record.fingerprint = fingerprint

        resource.set_attribute(TEMPLATE, resolution.template)

        payload = None if context.refresh else self.cache.get(fingerprint)
        if payload:
            state = HIT
        else:
            state = BYPASS if context.refresh else MISS
            logger.log(level, "Rendering %s (%s)", fingerprint, state)
            with host_cache_disabled(resource):
                payload = self.renderer.render(resource)
            record.rendered = True
            record.stored = self.cache.set(fingerprint, payload, self.config.ttl_sec)

        resource.set_content(payload)
        return GateOutcome(state, resolution.variant, fingerprint, payload, rendered=record.rendered)

    def _log_decision(self, record: RenderDecisionRecord, level: int) -> None:
        try:
            logger.log(level, "decision %s", record.to_json())
        except ValueError as e:
            logger.warning("Dropping invalid decision record: %s", e)
