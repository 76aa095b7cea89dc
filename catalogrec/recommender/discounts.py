"""Campaign discount resolution.

A campaign applies to a product when it lists the product id, lists the
product's category id, or lists neither (platform-wide). When several active
campaigns apply, the most generous one wins; campaigns never stack.
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from catalogrec.recommender.store import CAMPAIGNS, DocumentStore
from catalogrec.recommender.utils import utcnow

# Configure module logger
logger = logging.getLogger(__name__)


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    AMOUNT = "amount"

    @classmethod
    def _missing_(cls, value: Any) -> Optional["DiscountType"]:
        if isinstance(value, str):
            lowered = value.lower()
            # Campaigns created by seller tooling store fixed-amount discounts as "fixed"
            if lowered == "fixed":
                return cls.AMOUNT
            for member in cls:
                if member.value == lowered:
                    return member
        return None


def round_half_up(value: float, places: int = 2) -> float:
    """Round to `places` decimals with halves rounded away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def campaign_price(price: float, campaign: Dict[str, Any]) -> float:
    """Price of a product after a single campaign, before clamping."""
    value = campaign.get("discountValue", 0)
    try:
        discount_type = DiscountType(campaign.get("discountType"))
    except ValueError:
        logger.warning(
            "Ignoring campaign with unknown discount type",
            extra={
                "campaign_id": campaign.get("_id"),
                "discount_type": campaign.get("discountType"),
            },
        )
        return price

    if discount_type is DiscountType.PERCENTAGE:
        return price * (1 - value / 100)
    return price - value


class DiscountResolver:
    """Resolves the effective price of products against active campaigns.

    Args:
        store: Document store holding the ``campaigns`` collection. Campaign
            ``startDate``/``endDate`` values must be timezone-aware.
        clock: Source of the current time.
    """

    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._clock = clock

    def applicable_campaigns(self, product: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Active, in-window campaigns that apply to a product."""
        now = self._clock()
        scopes: List[Dict[str, Any]] = [
            {"productIds": str(product["_id"])},
            {"$and": [{"productIds": {"$size": 0}}, {"categoryIds": {"$size": 0}}]},
        ]
        if product.get("category"):
            scopes.insert(1, {"categoryIds": str(product["category"])})

        return self._store.find(
            CAMPAIGNS,
            {
                "isActive": True,
                "startDate": {"$lte": now},
                "endDate": {"$gte": now},
                "$or": scopes,
            },
        )

    def resolve_effective_price(self, product: Dict[str, Any]) -> Optional[float]:
        """Lowest price any applicable campaign gives a product.

        Args:
            product: Product document with ``_id``, ``price`` and ``category``.

        Returns:
            The discounted price, clamped to zero and rounded half-up to the
            cent, or None when no campaign applies. A campaign that would
            raise the price leaves it at the list price.
        """
        campaigns = self.applicable_campaigns(product)
        if not campaigns:
            return None

        price = product["price"]
        lowest = price
        for campaign in campaigns:
            candidate = campaign_price(price, campaign)
            if candidate < lowest:
                lowest = candidate

        effective = round_half_up(max(0.0, lowest))

        logger.debug(
            "Resolved effective price",
            extra={
                "product_id": str(product["_id"]),
                "price": price,
                "effective_price": effective,
                "campaign_count": len(campaigns),
            },
        )

        return effective

    def annotate_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        """Copy of a product with ``discountedPrice``, ``hasDiscount`` and
        ``discountPercentage`` added."""
        discounted_price = self.resolve_effective_price(product)
        price = product["price"]
        has_discount = discounted_price is not None and discounted_price < price

        discount_percentage = 0
        if has_discount:
            discount_percentage = int(
                round_half_up((price - discounted_price) / price * 100, places=0)
            )

        return {
            **product,
            "discountedPrice": discounted_price,
            "hasDiscount": has_discount,
            "discountPercentage": discount_percentage,
        }

    def annotate_discounts(self, products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [self.annotate_product(product) for product in products]
