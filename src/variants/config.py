"""Configuration loader for variant selection and caching."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

from pagecache.cache import HOST_NAMESPACE
from pagecache.fingerprint import validate_variant_name

STORE_BACKENDS = {"sqlite", "memory"}
DEFAULT_ALTERNATES = {"tablet": "TabletTemplate", "mobile": "MobileTemplate"}


@dataclass(frozen=True)
class StoreConfig:
    backend: str
    path: Path


@dataclass(frozen=True)
class CircuitBreakerConfig:
    fails: int
    ttl_sec: int


@dataclass(frozen=True)
class VariantConfig:
    namespace: str
    ttl_sec: int
    default_variant: str
    # (variant name, attribute holding its template), in declaration order
    alternates: Tuple[Tuple[str, str], ...]
    placeholder: str
    log_level: int
    store: StoreConfig
    cb_store: CircuitBreakerConfig

    def __post_init__(self) -> None:
        if not self.namespace or self.namespace == HOST_NAMESPACE:
            raise ValueError(f"namespace must be non-empty and differ from {HOST_NAMESPACE!r}")
        if self.ttl_sec < 0:
            raise ValueError(f"ttl_sec must be >= 0, got {self.ttl_sec}")
        names = [self.default_variant] + [name for name, _ in self.alternates]
        for name in names:
            validate_variant_name(name)
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate variant names: {names}")
        if self.store.backend not in STORE_BACKENDS:
            raise ValueError(f"unknown store backend {self.store.backend!r}")

    @property
    def variant_names(self) -> Tuple[str, ...]:
        return (self.default_variant,) + tuple(name for name, _ in self.alternates)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VariantConfig":
        store_data = data.get("store", {})
        cb_data = data.get("circuit_breaker", {})
        alternates = data.get("alternates", DEFAULT_ALTERNATES)
        if alternates is None:
            alternates = {}
        return cls(
            namespace=str(data.get("namespace", "resource_custom")),
            ttl_sec=int(data.get("ttl_sec", 0)),
            default_variant=_variant_name(data.get("default_variant", "desktop")),
            alternates=tuple((_variant_name(name), str(attr)) for name, attr in alternates.items()),
            placeholder=str(data.get("placeholder", "browser_detected")),
            log_level=parse_log_level(data.get("log_level", "DEBUG")),
            store=StoreConfig(
                backend=str(store_data.get("backend", "sqlite")),
                path=Path(os.path.expanduser(store_data.get("path", "~/.cache/variants/responses.db"))),
            ),
            cb_store=CircuitBreakerConfig(
                fails=int(cb_data.get("fails", 3)),
                ttl_sec=int(cb_data.get("ttl_sec", 30)),
            ),
        )


def _variant_name(value: Any) -> str:
    # Overrides arrive lowercased, so names are matched in lowercase too
    return str(value).strip().lower()


def parse_log_level(value: Any) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level {value!r}")
    return level


ENV_MAP = {
    "namespace": "VARIANT_CACHE_NAMESPACE",
    "ttl_sec": "VARIANT_CACHE_TTL_SEC",
    "default_variant": "VARIANT_DEFAULT",
    "placeholder": "VARIANT_PLACEHOLDER",
    "log_level": "VARIANT_LOG_LEVEL",
    "store.backend": "VARIANT_STORE_BACKEND",
    "store.path": "VARIANT_STORE_PATH",
    "circuit_breaker.fails": "CB_STORE_FAILS",
    "circuit_breaker.ttl_sec": "CB_STORE_TTL_SEC",
}


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(config_data))  # deep copy via json

    for dotted_key, env_name in ENV_MAP.items():
        if env_name not in os.environ:
            continue
        value: Any = os.environ[env_name]
        target = merged
        parts = dotted_key.split(".")
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        last = parts[-1]
        if last in {"fails", "ttl_sec"}:
            value = int(value)
        target[last] = value

    return merged


def load_config(config_path: str | Path = "config/variants.defaults.yml") -> VariantConfig:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = load_yaml(path)
    data = merge_env_overrides(data)
    return VariantConfig.from_dict(data)
