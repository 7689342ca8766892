#!/usr/bin/env python3
"""
Fingerprints — cache keys for (resource, variant) pairs

Implements:
- fingerprint(resource_id, variant) → "<resource_id>.<variant>"
- split(fingerprint) → (resource_id, variant)
- Same resource + same variant = identical key (cache hit)
- Different variant for the same resource = different key
"""

import logging
from typing import Tuple, Union

logger = logging.getLogger(__name__)

SEPARATOR = "."


def validate_variant_name(variant: str) -> str:
    """Variant names must be non-empty and free of the separator."""
    if not variant or SEPARATOR in variant:
        raise ValueError(f"invalid variant name {variant!r}: must be non-empty and not contain {SEPARATOR!r}")
    return variant


class FingerprintBuilder:
    """
    Build deterministic cache keys for rendered variants.

    Design:
    - key = f"{resource_id}{SEPARATOR}{variant}", readable in the store
    - Variant names never contain the separator, so the last separator
      always splits a key back into its pair: no two pairs share a key
    """

    def fingerprint(self, resource_id: Union[int, str], variant: str) -> str:
        validate_variant_name(variant)
        key = f"{resource_id}{SEPARATOR}{variant}"
        logger.debug(f"Generated fingerprint: {key}")
        return key

    def split(self, fingerprint: str) -> Tuple[str, str]:
        resource_id, sep, variant = fingerprint.rpartition(SEPARATOR)
        if not sep or not variant:
            raise ValueError(f"not a fingerprint: {fingerprint!r}")
        return resource_id, variant


_default = FingerprintBuilder()


def fingerprint(resource_id: Union[int, str], variant: str) -> str:
    return _default.fingerprint(resource_id, variant)
