#!/usr/bin/env python3
"""
Variant Classifier

Resolution order for a page request:
1. Alternate templates — every configured alternate needs a template value,
   otherwise variant switching is skipped for the resource
2. Manual override — a known variant name wins, no client detection
3. Client detection — tablet checked before mobile, first match wins
4. Default variant — when nothing matches
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

from variants.config import VariantConfig
from variants.context import RequestContext
from variants.resource import TEMPLATE, Resource

logger = logging.getLogger(__name__)


class ConfigurationIncomplete(Exception):
    """A resource lacks one or more alternate template values."""

    def __init__(self, resource_id: Any, missing: list):
        self.resource_id = resource_id
        self.missing = missing
        super().__init__(f"resource {resource_id}: {', '.join(missing)} require values")


class ClientClassifier(Protocol):
    def classify(self, request_meta: Mapping[str, Any]) -> str: ...


class DeviceDetector(Protocol):
    def is_tablet(self, request_meta: Mapping[str, Any]) -> bool: ...

    def is_mobile(self, request_meta: Mapping[str, Any]) -> bool: ...


def _header(request_meta: Mapping[str, Any], name: str) -> str:
    for key, value in request_meta.items():
        if key.lower() == name.lower():
            return str(value or "")
    return ""


class UserAgentDetector:
    """Keyword matching on the User-Agent header. Free, instant, approximate."""

    TABLET_KEYWORDS = [
        "ipad", "tablet", "kindle", "silk/", "playbook", "nexus 7",
        "nexus 9", "nexus 10", "sm-t", "xoom",
    ]
    MOBILE_KEYWORDS = [
        "mobi", "iphone", "ipod", "android", "blackberry", "windows phone",
        "opera mini", "iemobile", "webos",
    ]

    def _user_agent(self, request_meta: Mapping[str, Any]) -> str:
        return _header(request_meta, "User-Agent").lower()

    def is_tablet(self, request_meta: Mapping[str, Any]) -> bool:
        ua = self._user_agent(request_meta)
        if any(keyword in ua for keyword in self.TABLET_KEYWORDS):
            return True
        # Android tablets leave "mobile" out of the UA string
        return "android" in ua and "mobile" not in ua

    def is_mobile(self, request_meta: Mapping[str, Any]) -> bool:
        ua = self._user_agent(request_meta)
        return any(keyword in ua for keyword in self.MOBILE_KEYWORDS)


class DetectorClassifier:
    """Map a device detector onto variant names, tablet before mobile."""

    def __init__(
        self,
        detector: Optional[DeviceDetector] = None,
        default: str = "desktop",
        tablet: str = "tablet",
        mobile: str = "mobile",
    ):
        self.detector = detector or UserAgentDetector()
        self.default = default
        self.tablet = tablet
        self.mobile = mobile

    @classmethod
    def for_config(cls, config: VariantConfig, detector: Optional[DeviceDetector] = None) -> "DetectorClassifier":
        """First alternate answers tablet detection, second answers mobile."""
        names = [name for name, _ in config.alternates]
        return cls(
            detector,
            default=config.default_variant,
            tablet=names[0] if names else config.default_variant,
            mobile=names[1] if len(names) > 1 else config.default_variant,
        )

    def classify(self, request_meta: Mapping[str, Any]) -> str:
        if self.detector.is_tablet(request_meta):
            return self.tablet
        if self.detector.is_mobile(request_meta):
            return self.mobile
        return self.default


@dataclass(frozen=True)
class Resolution:
    """Variant chosen for one request."""
    variant: str
    template: Any
    method: str  # "override", "classifier", "fallback"


class VariantResolver:
    def __init__(self, config: VariantConfig, classifier: Optional[ClientClassifier] = None):
        self.config = config
        self.classifier = classifier or DetectorClassifier.for_config(config)

    def templates_for(self, resource: Resource) -> dict:
        """Variant name → template for the resource; raises ConfigurationIncomplete."""
        templates = {self.config.default_variant: resource.get_attribute(TEMPLATE)}
        missing = []
        for name, attribute in self.config.alternates:
            value = resource.get_attribute(attribute)
            if value in (None, "", 0, "0"):
                missing.append(attribute)
            templates[name] = value
        if missing:
            raise ConfigurationIncomplete(resource.resource_id, missing)
        return templates

    def resolve(
        self,
        resource: Resource,
        context: RequestContext,
        request_meta: Mapping[str, Any],
    ) -> Resolution:
        level = context.log_level(self.config.log_level)
        templates = self.templates_for(resource)

        override = context.template_override
        if override:
            if override in templates:
                logger.log(level, "Manual override to %s template (%s)", override, templates[override])
                return Resolution(override, templates[override], "override")
            logger.log(level, "Ignoring unknown template override %r", override)

        try:
            variant = self.classifier.classify(request_meta)
        except Exception as e:  # noqa: BLE001
            logger.warning("Client classifier failed, using %s: %s", self.config.default_variant, e)
            variant = self.config.default_variant
            return Resolution(variant, templates[variant], "fallback")

        if variant not in templates:
            logger.warning("Classifier returned unknown variant %r, using %s", variant, self.config.default_variant)
            variant = self.config.default_variant
            return Resolution(variant, templates[variant], "fallback")

        logger.log(level, "%s detected", variant.capitalize())
        return Resolution(variant, templates[variant], "classifier")
