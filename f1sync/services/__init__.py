"""
Service layer - error taxonomy, caching and the reconciliation engine.

Provides:
- ServiceError hierarchy, including UpstreamErrorKind for gateway failures
- CacheManager: in-process TTL cache that never raises
- BatchReconciler (services.reconciler): gap-aware self-healing sync
- F1Catalog (services.catalog): cache-aside read path
"""

from f1sync.services.errors import (
    ServiceError,
    ValidationError,
    UpstreamError,
    UpstreamErrorKind,
    SyncError,
    CacheError,
    PersistenceError,
)
from f1sync.services.cache import CacheManager, CacheStats, SEASONS_CACHE_KEY

__all__ = [
    # Errors
    "ServiceError",
    "ValidationError",
    "UpstreamError",
    "UpstreamErrorKind",
    "SyncError",
    "CacheError",
    "PersistenceError",
    # Cache
    "CacheManager",
    "CacheStats",
    "SEASONS_CACHE_KEY",
]
