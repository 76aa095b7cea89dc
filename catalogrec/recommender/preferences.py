"""Preference analysis over a user's purchase history."""

import logging
from collections import Counter
from statistics import mean

from catalogrec.recommender.activity import ActivityStore
from catalogrec.recommender.store import PRODUCTS, DocumentStore
from catalogrec.recommender.utils import resolve_category_names
from catalogrec.recommender.vectors import (
    DEFAULT_RATING,
    FALLBACK_CATEGORY,
    Preferences,
    PriceRange,
    product_rating,
)

# Configure module logger
logger = logging.getLogger(__name__)

TOP_CATEGORIES = 3


class PreferenceAnalyzer:
    """Derives category, price and rating preferences from purchases.

    Recomputed in full on every call; there is no cache of its own.
    """

    def __init__(self, store: DocumentStore, activity_store: ActivityStore):
        self._store = store
        self._activities = activity_store

    def analyze_preferences(self, user_id: str) -> Preferences:
        """Summarize what a user bought.

        Users without an activity record get the default preferences (no
        favorite categories, price range 0-1000, average rating 3).

        Args:
            user_id: User to analyze.

        Returns:
            Preferences with up to three favorite categories ranked by
            purchase count (ties keep the order products come back from the
            store), the min/max price of purchased products and the mean
            product rating.
        """
        activity = self._activities.get_activity(user_id)
        if activity is None:
            logger.debug(f"No activity for user {user_id}, using default preferences")
            return Preferences()

        purchased = self._store.find(
            PRODUCTS, {"_id": {"$in": sorted(activity.purchased_products)}}
        )
        category_names = resolve_category_names(self._store, purchased)

        category_counts: Counter = Counter()
        prices = []
        ratings = []
        for product in purchased:
            category = category_names.get(str(product["_id"])) or FALLBACK_CATEGORY
            category_counts[category] += 1
            prices.append(product.get("price", 0))
            ratings.append(product_rating(product))

        price_range = PriceRange(min=min(prices), max=max(prices)) if prices else PriceRange()
        preferences = Preferences(
            favorite_categories=[
                category for category, _ in category_counts.most_common(TOP_CATEGORIES)
            ],
            price_range=price_range,
            average_rating=mean(ratings) if ratings else DEFAULT_RATING,
        )

        logger.debug(
            "Analyzed user preferences",
            extra={
                "user_id": user_id,
                "purchased_count": len(purchased),
                "favorite_categories": preferences.favorite_categories,
            },
        )

        return preferences
