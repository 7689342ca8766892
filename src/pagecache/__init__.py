"""
Variant cache storage layer
Namespaced page cache, fingerprints and store backends
"""

from .cache import VariantCache
from .fingerprint import FingerprintBuilder, fingerprint
from .store import MemoryStore, SQLiteStore, StoreUnavailable, open_store

__all__ = [
    'VariantCache',
    'FingerprintBuilder',
    'fingerprint',
    'MemoryStore',
    'SQLiteStore',
    'StoreUnavailable',
    'open_store',
]
