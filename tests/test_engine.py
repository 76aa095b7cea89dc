"""Tests for the recommendation engine over the sample catalog."""

import logging

import pytest

from catalogrec.config import VECTOR_TTL_SECONDS
from catalogrec.recommender.cache import InMemoryVectorCache, product_vector_key
from catalogrec.recommender.engine import RecommendationEngine

from conftest import NOW, POPULAR_ORDER, days_ago, ids


class FailingWriteCache(InMemoryVectorCache):
    """Cache whose writes always fail."""

    def set(self, key, value, ttl_seconds):
        raise ConnectionError("cache write refused")


class RecordingCache(InMemoryVectorCache):
    def __init__(self):
        super().__init__()
        self.ttls = {}

    def set(self, key, value, ttl_seconds):
        self.ttls[key] = ttl_seconds
        super().set(key, value, ttl_seconds)


# ----------------------------------------------------------------------
# Write path
# ----------------------------------------------------------------------


def test_vectors_are_fresh_after_tracking(engine):
    """Test that track_activity refreshes both vectors before returning."""
    assert engine.get_user_vector("u1") is None

    engine.track_activity("u1", "p3", "purchase")

    user_vector = engine.get_user_vector("u1")
    assert user_vector is not None
    assert user_vector.preferences.favorite_categories == ["books"]
    assert user_vector.preferences.price_range.max == 15.0
    assert engine.cache.get(product_vector_key("p3"))["features"]["category"] == "books"

    engine.track_activity("u1", "p1", "purchase")

    assert engine.get_user_vector("u1").preferences.price_range.max == 900.0


def test_vectors_written_with_day_long_ttl(catalog_store):
    cache = RecordingCache()
    engine = RecommendationEngine(catalog_store, cache)

    engine.track_activity("u1", "p1", "view")

    assert cache.ttls == {
        "user_vector:u1": VECTOR_TTL_SECONDS,
        "product_vector:p1": VECTOR_TTL_SECONDS,
    }
    assert VECTOR_TTL_SECONDS == 24 * 60 * 60


def test_unknown_activity_type_raises(engine):
    with pytest.raises(ValueError):
        engine.track_activity("u1", "p1", "wishlist")

    assert engine.get_user_vector("u1") is None


def test_vector_refresh_failure_does_not_fail_tracking(catalog_store, caplog):
    """Test that a cache outage during refresh is logged and swallowed."""
    engine = RecommendationEngine(catalog_store, FailingWriteCache())

    with caplog.at_level(logging.WARNING, logger="catalogrec.recommender.engine"):
        engine.track_activity("u1", "p1", "view")

    assert engine.activities.get_activity("u1").browsing_history == ["p1"]
    assert sum(record.getMessage() == "Vector refresh failed" for record in caplog.records) == 2


def test_update_vectors_skip_unknown_entities(engine):
    assert engine.update_user_vector("nobody") is None
    assert engine.update_product_vector("missing") is None
    assert len(engine.cache) == 0


def test_product_vector_for_unknown_category_name(engine):
    """Test that a category outside the vocabulary yields a zero segment."""
    product_vector = engine.update_product_vector("p7")

    assert product_vector.features.category == "gadgets"
    assert product_vector.vector[:8] == [0.0] * 8


# ----------------------------------------------------------------------
# Personalized
# ----------------------------------------------------------------------


def test_personalized_falls_back_to_popular_for_unknown_user(engine):
    assert engine.get_personalized_recommendations("nobody", 5) == engine.get_popular_products(5)


def test_personalized_ranks_active_products(engine):
    """Test scoring of every active product for a user with a vector.

    User and product vectors differ in length, so every score is 0 and the
    store order is kept.
    """
    engine.track_activity("u1", "p3", "purchase")

    results = engine.get_personalized_recommendations("u1", limit=10)

    assert ids(results) == ["p1", "p2", "p3", "p4", "p5", "p7", "p8"]
    assert all(product["similarity"] == 0.0 for product in results)


def test_personalized_caches_product_vectors_lazily(engine):
    engine.track_activity("u1", "p3", "purchase")

    engine.get_personalized_recommendations("u1", limit=2)

    for product_id in ["p1", "p2", "p4", "p5", "p7", "p8"]:
        assert engine.cache.get(product_vector_key(product_id)) is not None
    assert engine.cache.get(product_vector_key("p6")) is None


def test_personalized_respects_limit(engine):
    engine.track_activity("u1", "p3", "purchase")

    assert len(engine.get_personalized_recommendations("u1", limit=3)) == 3


def test_reads_propagate_cache_failures(catalog_store):
    class DownCache(InMemoryVectorCache):
        def get(self, key):
            raise ConnectionError("cache down")

    engine = RecommendationEngine(catalog_store, DownCache())

    with pytest.raises(ConnectionError):
        engine.get_personalized_recommendations("u1")


# ----------------------------------------------------------------------
# Frequently bought together
# ----------------------------------------------------------------------


def test_frequently_bought_together_ranks_co_purchases(engine):
    """Test counting over completed and shipped orders only."""
    results = engine.get_frequently_bought_together("p1")

    # p6 co-occurs too but is inactive; the cancelled order is ignored
    assert ids(results) == ["p8", "p3"]
    assert [product["coPurchaseCount"] for product in results] == [2, 1]


def test_frequently_bought_together_excludes_product_itself(engine, catalog_store):
    catalog_store.insert_one(
        "orders",
        {"_id": "o7", "status": "completed", "createdAt": days_ago(1),
         "items": [{"productId": "p2", "quantity": 1}, {"productId": "p5", "quantity": 1},
                   {"productId": "p5", "quantity": 1}, {"productId": "p2", "quantity": 1}]},
    )

    results = engine.get_frequently_bought_together("p2")

    assert ids(results) == ["p5"]
    # Each line item counts, so a product listed twice counts twice
    assert results[0]["coPurchaseCount"] == 2


def test_frequently_bought_together_limit_and_unknown(engine):
    assert ids(engine.get_frequently_bought_together("p1", limit=1)) == ["p8"]
    assert engine.get_frequently_bought_together("missing") == []


# ----------------------------------------------------------------------
# Popular, category and browsing history
# ----------------------------------------------------------------------


def test_popular_products_by_ascending_price(engine):
    assert ids(engine.get_popular_products()) == POPULAR_ORDER
    assert ids(engine.get_popular_products(2)) == ["p3", "p5"]


def test_category_recommendations_only_active(engine):
    assert ids(engine.get_category_recommendations("c3")) == ["p5"]
    assert ids(engine.get_category_recommendations("c1")) == ["p8", "p2", "p1"]
    assert engine.get_category_recommendations("c404") == []


def test_browsing_history_falls_back_to_popular(engine):
    assert ids(engine.get_browsing_history_recommendations("nobody")) == POPULAR_ORDER

    engine.track_activity("u1", "p3", "purchase")

    assert ids(engine.get_browsing_history_recommendations("u1", 3)) == POPULAR_ORDER[:3]


def test_browsing_history_excludes_browsed_products(engine):
    engine.track_activity("u1", "p3", "view")
    engine.track_activity("u1", "p5", "view")

    results = engine.get_browsing_history_recommendations("u1")

    assert ids(results) == ["p4", "p7", "p8", "p2", "p1"]


# ----------------------------------------------------------------------
# Best sellers
# ----------------------------------------------------------------------


def test_best_sellers_sum_quantities_in_window(engine):
    """Test that only processing, shipped and delivered orders count."""
    results = engine.get_best_sellers()

    assert ids(results) == ["p3", "p1", "p8", "p4"]
    assert [product["orderCount"] for product in results] == [4, 1, 1, 1]


def test_best_sellers_window_and_limit(engine):
    assert ids(engine.get_best_sellers(days=3)) == ["p3", "p4"]
    assert ids(engine.get_best_sellers(limit=1)) == ["p3"]


def test_best_sellers_skip_inactive_products(engine, catalog_store):
    catalog_store.insert_one(
        "orders",
        {"_id": "o8", "status": "shipped", "createdAt": NOW,
         "items": [{"productId": "p6", "quantity": 10}]},
    )

    assert ids(engine.get_best_sellers()) == ["p3", "p1", "p8", "p4"]


def test_best_sellers_fall_back_to_newest(engine):
    """Test newest active products when no order falls in the window."""
    assert ids(engine.get_best_sellers(limit=3, days=0)) == ["p8", "p7", "p5"]


def test_best_sellers_skip_out_of_stock_products(engine, catalog_store):
    """Test that sold-out products drop out of both the ranking and the fallback."""
    assert ids(engine.get_best_sellers(limit=10, days=0)) == [
        "p8", "p7", "p5", "p4", "p3", "p1"
    ]

    catalog_store.insert_one(
        "orders",
        {"_id": "o9", "status": "delivered", "createdAt": NOW,
         "items": [{"productId": "p2", "quantity": 9}]},
    )

    assert ids(engine.get_best_sellers()) == ["p3", "p1", "p8", "p4"]


# ----------------------------------------------------------------------
# Related products and listings
# ----------------------------------------------------------------------


def test_related_products_share_category_or_tag(engine, catalog_store):
    """Test category and tag matches, excluding the product and sold-out items."""
    catalog_store.insert_one(
        "products",
        {"_id": "p9", "name": "Sleeve", "price": 30.0, "category": "c3",
         "tags": ["premium"], "isActive": True, "stock": 3},
    )

    assert ids(engine.get_related_products("p1")) == ["p8", "p9"]
    assert ids(engine.get_related_products("p1", limit=1)) == ["p8"]
    assert ids(engine.get_related_products("p3")) == ["p4"]


def test_related_products_for_unknown_or_untagged_product(engine, catalog_store):
    catalog_store.insert_one("products", {"_id": "bare", "price": 1.0, "isActive": True})

    assert engine.get_related_products("missing") == []
    assert engine.get_related_products("bare") == []


def test_new_arrivals_window(engine):
    """Test that the window is inclusive and results are newest first."""
    assert ids(engine.get_new_arrivals()) == ["p8", "p7", "p5", "p4", "p3"]
    assert ids(engine.get_new_arrivals(days=12)) == ["p8", "p7"]
    assert ids(engine.get_new_arrivals(limit=1)) == ["p8"]


def test_featured_products(engine, catalog_store):
    assert ids(engine.get_featured_products()) == ["p8", "p4"]

    catalog_store.replace_one(
        "products",
        {"_id": "p8"},
        {**catalog_store.find_by_id("products", "p8"), "stock": 0},
    )
    assert ids(engine.get_featured_products()) == ["p4"]
