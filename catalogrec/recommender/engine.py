"""Recommendation engine.

Orchestrates the activity store, preference analyzer, vector builder and
vector cache to answer recommendation queries. All queries only return
active products. Missing users or products never raise: they produce empty
results or fall back to popular products.
"""

import logging
import time
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from catalogrec.config import (
    DEFAULT_BEST_SELLER_DAYS,
    DEFAULT_BEST_SELLER_LIMIT,
    DEFAULT_BOUGHT_TOGETHER_LIMIT,
    DEFAULT_LIMIT,
    DEFAULT_LISTING_LIMIT,
    DEFAULT_NEW_ARRIVAL_DAYS,
    DEFAULT_RELATED_LIMIT,
    VECTOR_TTL_SECONDS,
)
from catalogrec.recommender.activity import ActivityStore, ActivityType
from catalogrec.recommender.cache import (
    VectorCache,
    product_vector_key,
    user_vector_key,
)
from catalogrec.recommender.preferences import PreferenceAnalyzer
from catalogrec.recommender.store import (
    ASCENDING,
    DESCENDING,
    ORDERS,
    PRODUCTS,
    DocumentStore,
)
from catalogrec.recommender.utils import resolve_category_names, utcnow
from catalogrec.recommender.vectors import (
    FALLBACK_CATEGORY,
    ProductVector,
    UserVector,
    build_product_vector,
    build_user_vector,
    cosine_similarity,
)

# Configure module logger
logger = logging.getLogger(__name__)

# Order statuses counted when mining co-purchases
CO_PURCHASE_STATUSES = ["completed", "shipped"]

# Order statuses counted towards best sellers
BEST_SELLER_STATUSES = ["processing", "shipped", "delivered"]

# Filter for products that can be sold right now
IN_STOCK = {"isActive": True, "stock": {"$gt": 0}}

Product = Dict[str, Any]


class RecommendationEngine:
    """Answers recommendation queries over a document store.

    Args:
        store: Document store with products, categories, orders and user
            activity collections.
        cache: Vector cache shared by user and product vectors.
        activity_store: Activity store; built over `store` when omitted.
        preference_analyzer: Preference analyzer; built over `store` when
            omitted.
        ttl_seconds: Time-to-live of cached vectors.
        clock: Source of the current time, used by best-seller windows.
    """

    def __init__(
        self,
        store: DocumentStore,
        cache: VectorCache,
        activity_store: Optional[ActivityStore] = None,
        preference_analyzer: Optional[PreferenceAnalyzer] = None,
        ttl_seconds: int = VECTOR_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.cache = cache
        self.activities = activity_store or ActivityStore(store)
        self.preferences = preference_analyzer or PreferenceAnalyzer(
            store, self.activities
        )
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def track_activity(
        self,
        user_id: str,
        product_id: str,
        activity_type: Union[ActivityType, str],
    ) -> None:
        """Record an activity, then refresh the user and product vectors.

        The vectors are recomputed synchronously so they are fresh as soon as
        this returns. Vector refresh is best-effort: a failure there is logged
        and does not fail the tracking call.

        Raises:
            ValueError: If activity_type is not a known activity type.
        """
        self.activities.record_activity(user_id, product_id, activity_type)

        self._refresh(self.update_user_vector, str(user_id), "user")
        self._refresh(self.update_product_vector, str(product_id), "product")

    def _refresh(self, update: Callable[[str], Any], key: str, kind: str) -> None:
        try:
            update(key)
        except Exception as e:
            logger.warning(
                "Vector refresh failed",
                extra={
                    "vector_kind": kind,
                    "key": key,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )

    def update_user_vector(self, user_id: str) -> Optional[UserVector]:
        """Recompute a user's vector and write it to the cache.

        Users without an activity record get no vector.
        """
        if self.activities.get_activity(user_id) is None:
            logger.debug(f"No activity for user {user_id}, skipping user vector")
            return None

        preferences = self.preferences.analyze_preferences(user_id)
        user_vector = build_user_vector(user_id, preferences)
        self.cache.set(user_vector_key(user_id), user_vector.to_dict(), self.ttl_seconds)
        return user_vector

    def update_product_vector(self, product_id: str) -> Optional[ProductVector]:
        """Recompute a product's vector and write it to the cache.

        Unknown products are skipped.
        """
        product = self.store.find_by_id(PRODUCTS, str(product_id))
        if product is None:
            logger.debug(f"Product {product_id} not found, skipping product vector")
            return None

        category_name = resolve_category_names(self.store, [product])[str(product["_id"])]
        product_vector = build_product_vector(product, category_name)
        self.cache.set(
            product_vector_key(product_vector.product_id),
            product_vector.to_dict(),
            self.ttl_seconds,
        )
        return product_vector

    # ------------------------------------------------------------------
    # Vector lookups
    # ------------------------------------------------------------------

    def get_user_vector(self, user_id: str) -> Optional[UserVector]:
        """Cached user vector, or None on a miss."""
        cached = self.cache.get(user_vector_key(user_id))
        if cached is None:
            return None
        return UserVector.from_dict(cached)

    def get_product_vector(
        self, product: Product, category_name: Optional[str] = None
    ) -> ProductVector:
        """Cached product vector, built and cached on a miss."""
        key = product_vector_key(str(product["_id"]))
        cached = self.cache.get(key)
        if cached is not None:
            return ProductVector.from_dict(cached)

        product_vector = build_product_vector(product, category_name)
        self.cache.set(key, product_vector.to_dict(), self.ttl_seconds)
        return product_vector

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_personalized_recommendations(
        self, user_id: str, limit: int = DEFAULT_LIMIT
    ) -> List[Product]:
        """Active products ranked by similarity to the user's vector.

        Users without a cached vector get the popular products instead; the
        user vector is not built on demand. Product vectors are built and
        cached lazily. Equal similarities keep the store's natural order.

        Returns:
            Product documents with a ``similarity`` score attached.
        """
        start_time = time.time()

        user_vector = self.get_user_vector(user_id)
        if user_vector is None:
            logger.info(
                "No user vector, falling back to popular products",
                extra={"user_id": user_id, "strategy": "popular"},
            )
            return self.get_popular_products(limit)

        products = self.store.find(PRODUCTS, {"isActive": True})
        category_names = resolve_category_names(self.store, products)

        scored = []
        for product in products:
            product_vector = self.get_product_vector(
                product, category_names.get(str(product["_id"]))
            )
            similarity = cosine_similarity(user_vector.vector, product_vector.vector)
            scored.append((product, similarity))

        # sorted() is stable, so ties keep the store order
        ranked = sorted(scored, key=lambda item: item[1], reverse=True)[: max(limit, 0)]

        logger.info(
            "Personalized recommendations generated",
            extra={
                "user_id": user_id,
                "num_candidates": len(products),
                "num_recommendations": len(ranked),
                "total_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )

        return [{**product, "similarity": similarity} for product, similarity in ranked]

    def get_frequently_bought_together(
        self, product_id: str, limit: int = DEFAULT_BOUGHT_TOGETHER_LIMIT
    ) -> List[Product]:
        """Active products most often ordered together with a product.

        Scans completed and shipped orders containing the product and counts
        every other line item once per occurrence, so a product listed twice
        in one order counts twice.

        Returns:
            Product documents ranked by ``coPurchaseCount`` (descending, ties
            in first-encounter order), never including the product itself.
        """
        product_id = str(product_id)
        orders = self.store.find(
            ORDERS,
            {
                "items.productId": product_id,
                "status": {"$in": CO_PURCHASE_STATUSES},
            },
        )

        counts: Dict[str, int] = {}
        for order in orders:
            for item in order.get("items") or []:
                other_id = str(item.get("productId"))
                if other_id == product_id:
                    continue
                counts[other_id] = counts.get(other_id, 0) + 1

        if not counts:
            return []

        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        active = {
            str(product["_id"]): product
            for product in self.store.find(
                PRODUCTS, {"_id": {"$in": list(counts)}, "isActive": True}
            )
        }

        results = [
            {**active[other_id], "coPurchaseCount": count}
            for other_id, count in ranked
            if other_id in active
        ]

        logger.debug(
            "Frequently bought together computed",
            extra={
                "product_id": product_id,
                "num_orders": len(orders),
                "num_candidates": len(counts),
            },
        )

        return results[: max(limit, 0)]

    def get_popular_products(self, limit: int = DEFAULT_LIMIT) -> List[Product]:
        """Active products ordered by ascending price.

        Price stands in for popularity here; no purchase or view counts are
        consulted.
        """
        return self.store.find(
            PRODUCTS,
            {"isActive": True},
            sort=[("price", ASCENDING)],
            limit=limit,
        )

    def get_category_recommendations(
        self, category_id: str, limit: int = DEFAULT_LIMIT
    ) -> List[Product]:
        """Active products of a category ordered by ascending price."""
        return self.store.find(
            PRODUCTS,
            {"isActive": True, "category": str(category_id)},
            sort=[("price", ASCENDING)],
            limit=limit,
        )

    def get_browsing_history_recommendations(
        self, user_id: str, limit: int = DEFAULT_LIMIT
    ) -> List[Product]:
        """Active products the user has not browsed yet, by ascending price.

        Users without browsing history get the popular products. The
        categories of the last browsed products are tallied and logged but do
        not narrow the results.
        """
        activity = self.activities.get_activity(user_id)
        if activity is None or not activity.browsing_history:
            return self.get_popular_products(limit)

        recent = self.store.find(PRODUCTS, {"_id": {"$in": activity.recent_history()}})
        category_names = resolve_category_names(self.store, recent)
        category_counts = Counter(
            category_names.get(str(product["_id"])) or FALLBACK_CATEGORY
            for product in recent
        )
        logger.debug(
            "Recent browsing categories",
            extra={"user_id": user_id, "category_counts": dict(category_counts)},
        )

        return self.store.find(
            PRODUCTS,
            {"isActive": True, "_id": {"$nin": list(activity.browsing_history)}},
            sort=[("price", ASCENDING)],
            limit=limit,
        )

    def get_best_sellers(
        self,
        limit: int = DEFAULT_BEST_SELLER_LIMIT,
        days: int = DEFAULT_BEST_SELLER_DAYS,
    ) -> List[Product]:
        """In-stock active products with the most units ordered in the last `days` days.

        Only processing, shipped and delivered orders count. When no order
        qualifies, the newest in-stock active products are returned instead.

        Returns:
            Product documents ranked by ``orderCount`` (units ordered).
        """
        since = self._clock() - timedelta(days=days)
        totals = self.store.aggregate_sum(
            ORDERS,
            match={
                "createdAt": {"$gte": since},
                "status": {"$in": BEST_SELLER_STATUSES},
            },
            unwind="items",
            group_by="productId",
            sum_field="quantity",
        )

        if not totals:
            logger.info("No qualifying orders, falling back to newest products")
            return self.store.find(
                PRODUCTS,
                IN_STOCK,
                sort=[("createdAt", DESCENDING)],
                limit=limit,
            )

        ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
        ranked = ranked[: max(limit, 0)]
        active = {
            str(product["_id"]): product
            for product in self.store.find(
                PRODUCTS,
                {"_id": {"$in": [str(pid) for pid, _ in ranked]}, **IN_STOCK},
            )
        }

        return [
            {**active[str(pid)], "orderCount": total}
            for pid, total in ranked
            if str(pid) in active
        ]

    def get_related_products(
        self, product_id: str, limit: int = DEFAULT_RELATED_LIMIT
    ) -> List[Product]:
        """In-stock active products sharing the product's category or a tag.

        The product itself is never included. Unknown products, and products
        with neither a category nor tags, have no related products.
        """
        product = self.store.find_by_id(PRODUCTS, str(product_id))
        if product is None:
            return []

        shared = []
        if product.get("category"):
            shared.append({"category": product["category"]})
        if product.get("tags"):
            shared.append({"tags": {"$in": list(product["tags"])}})
        if not shared:
            return []

        return self.store.find(
            PRODUCTS,
            {"_id": {"$nin": [product["_id"]]}, "$or": shared, **IN_STOCK},
            limit=limit,
        )

    def get_new_arrivals(
        self,
        limit: int = DEFAULT_LISTING_LIMIT,
        days: int = DEFAULT_NEW_ARRIVAL_DAYS,
    ) -> List[Product]:
        """In-stock active products created in the last `days` days, newest first."""
        since = self._clock() - timedelta(days=days)
        return self.store.find(
            PRODUCTS,
            {"createdAt": {"$gte": since}, **IN_STOCK},
            sort=[("createdAt", DESCENDING)],
            limit=limit,
        )

    def get_featured_products(self, limit: int = DEFAULT_LISTING_LIMIT) -> List[Product]:
        """In-stock active products flagged as featured, newest first."""
        return self.store.find(
            PRODUCTS,
            {"isFeatured": True, **IN_STOCK},
            sort=[("createdAt", DESCENDING)],
            limit=limit,
        )
