"""
Cross-build cache store for DepKit.
"""

from depkit.cache.store import (
    DEFAULT_CACHE_DIRECTORIES,
    CacheStatus,
    CacheStore,
    RestoreReport,
    classify,
    clear,
    resolve_cache_directories,
    restore_directories,
    save_directories,
)

__all__ = [
    "DEFAULT_CACHE_DIRECTORIES",
    "CacheStatus",
    "CacheStore",
    "RestoreReport",
    "classify",
    "clear",
    "resolve_cache_directories",
    "restore_directories",
    "save_directories",
]
