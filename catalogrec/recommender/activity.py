"""Per-user interaction history.

One ``user_activities`` document per user records the products they viewed,
browsed and purchased. Records are created on the first tracked activity and
never deleted here.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Union

from catalogrec.config import RECENT_HISTORY_SIZE
from catalogrec.recommender.store import USER_ACTIVITIES, DocumentStore

# Configure module logger
logger = logging.getLogger(__name__)


class ActivityType(str, Enum):
    VIEW = "view"
    PURCHASE = "purchase"
    CART_ADD = "cart_add"


@dataclass
class UserActivity:
    """Interaction history of one user.

    Each record owns its collections; nothing is shared between records.
    """

    user_id: str
    viewed_products: Set[str] = field(default_factory=set)
    browsing_history: List[str] = field(default_factory=list)
    purchased_products: Set[str] = field(default_factory=set)
    # Reserved for explicitly captured preferences; never written here.
    favorite_categories: List[str] = field(default_factory=list)

    def apply(self, product_id: str, activity_type: ActivityType) -> None:
        """Fold one activity into the record."""
        if activity_type is ActivityType.VIEW:
            self.viewed_products.add(product_id)
            if product_id not in self.browsing_history:
                self.browsing_history.append(product_id)
        elif activity_type is ActivityType.PURCHASE:
            self.purchased_products.add(product_id)
        # CART_ADD is accepted but has no field to record it in yet.

    def recent_history(self, size: int = RECENT_HISTORY_SIZE) -> List[str]:
        """Last `size` browsed products, most recent last."""
        return self.browsing_history[-size:]

    def to_document(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "viewedProducts": sorted(self.viewed_products),
            "browsingHistory": list(self.browsing_history),
            "purchasedProducts": sorted(self.purchased_products),
            "favoriteCategories": list(self.favorite_categories),
        }

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "UserActivity":
        return cls(
            user_id=str(document["userId"]),
            viewed_products=set(document.get("viewedProducts") or []),
            browsing_history=list(document.get("browsingHistory") or []),
            purchased_products=set(document.get("purchasedProducts") or []),
            favorite_categories=list(document.get("favoriteCategories") or []),
        )


class ActivityStore:
    """Reads and writes UserActivity records through a document store."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def get_activity(self, user_id: str) -> Optional[UserActivity]:
        document = self._store.find_one(USER_ACTIVITIES, {"userId": str(user_id)})
        if document is None:
            return None
        return UserActivity.from_document(document)

    def record_activity(
        self,
        user_id: str,
        product_id: str,
        activity_type: Union[ActivityType, str],
    ) -> UserActivity:
        """Record a view, purchase or cart-add.

        Views and purchases have set semantics: repeating one leaves the
        record unchanged. The record is created on the first call for a user.

        Args:
            user_id: User performing the activity.
            product_id: Product the activity refers to.
            activity_type: One of ``view``, ``purchase`` or ``cart_add``.

        Returns:
            The updated UserActivity.

        Raises:
            ValueError: If activity_type is not a known activity type.
        """
        activity_type = ActivityType(activity_type)
        user_id = str(user_id)
        product_id = str(product_id)

        activity = self.get_activity(user_id)
        created = activity is None
        if activity is None:
            activity = UserActivity(user_id=user_id)

        activity.apply(product_id, activity_type)

        self._store.replace_one(
            USER_ACTIVITIES,
            {"userId": user_id},
            activity.to_document(),
            upsert=True,
        )

        logger.info(
            "Recorded user activity",
            extra={
                "user_id": user_id,
                "product_id": product_id,
                "activity_type": activity_type.value,
                "new_record": created,
            },
        )

        return activity
