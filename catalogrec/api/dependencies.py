"""FastAPI dependencies providing the recommendation engine.

The document store and vector cache are built once per process on first use.
Tests replace :func:`get_engine` and :func:`get_discount_resolver` through
``app.dependency_overrides``.
"""

import logging
from typing import Optional

from catalogrec.config import DATA_DIR, REDIS_URL, VECTOR_TTL_SECONDS
from catalogrec.recommender.cache import (
    InMemoryVectorCache,
    RedisVectorCache,
    VectorCache,
)
from catalogrec.recommender.discounts import DiscountResolver
from catalogrec.recommender.engine import RecommendationEngine
from catalogrec.recommender.store import DocumentStore, InMemoryDocumentStore
from catalogrec.recommender.utils import load_catalog

# Configure module logger
logger = logging.getLogger(__name__)

_store: Optional[DocumentStore] = None
_engine: Optional[RecommendationEngine] = None
_discount_resolver: Optional[DiscountResolver] = None


def _build_store() -> DocumentStore:
    if DATA_DIR.exists():
        return load_catalog(str(DATA_DIR))

    logger.warning(
        f"Catalog directory {DATA_DIR} not found, starting with an empty store"
    )
    return InMemoryDocumentStore()


def _build_cache() -> VectorCache:
    if REDIS_URL:
        return RedisVectorCache.from_url(REDIS_URL)

    logger.info("REDIS_URL not set, using in-memory vector cache")
    return InMemoryVectorCache()


def get_store() -> DocumentStore:
    global _store

    if _store is None:
        _store = _build_store()
    return _store


def get_engine() -> RecommendationEngine:
    """Process-wide recommendation engine, built on first use."""
    global _engine

    if _engine is None:
        _engine = RecommendationEngine(
            get_store(), _build_cache(), ttl_seconds=VECTOR_TTL_SECONDS
        )
    return _engine


def get_discount_resolver() -> DiscountResolver:
    global _discount_resolver

    if _discount_resolver is None:
        _discount_resolver = DiscountResolver(get_store())
    return _discount_resolver


def reset() -> None:
    """Drop the cached store, engine and resolver."""
    global _store, _engine, _discount_resolver

    _store = None
    _engine = None
    _discount_resolver = None
