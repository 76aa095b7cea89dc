"""Hand-engineered feature vectors for products and users.

Product vectors (length 18) concatenate:

- 8 category slots (one-hot over :class:`Category`)
- normalized price, normalized rating, normalized sales count
- 7 tag slots (multi-hot over :class:`Tag`)

User vectors (length 11) concatenate:

- 8 category slots (multi-hot over the user's favorite categories)
- normalized minimum and maximum purchase price, normalized average rating

Everything here is pure: no I/O, no randomness.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type

import numpy as np

PRICE_SCALE = 1000.0
RATING_SCALE = 5.0
SALES_SCALE = 1000.0

DEFAULT_RATING = 3.0
DEFAULT_SALES_COUNT = 0
DEFAULT_MIN_PRICE = 0.0
DEFAULT_MAX_PRICE = 1000.0
FALLBACK_CATEGORY = "other"


class Category(str, Enum):
    """Category vocabulary; member order fixes the vector slot order."""

    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    BOOKS = "books"
    HOME = "home"
    SPORTS = "sports"
    BEAUTY = "beauty"
    FOOD = "food"
    OTHER = "other"


class Tag(str, Enum):
    """Tag vocabulary; member order fixes the vector slot order."""

    NEW = "new"
    SALE = "sale"
    TRENDING = "trending"
    POPULAR = "popular"
    LIMITED = "limited"
    PREMIUM = "premium"
    ECO_FRIENDLY = "eco-friendly"


PRODUCT_VECTOR_LENGTH = len(Category) + 3 + len(Tag)
USER_VECTOR_LENGTH = len(Category) + 3


@dataclass
class ProductFeatures:
    category: str
    price: float
    rating: float
    sales_count: int
    tags: List[str] = field(default_factory=list)


@dataclass
class ProductVector:
    product_id: str
    vector: List[float]
    features: ProductFeatures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "vector": list(self.vector),
            "features": {
                "category": self.features.category,
                "price": self.features.price,
                "rating": self.features.rating,
                "salesCount": self.features.sales_count,
                "tags": list(self.features.tags),
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductVector":
        features = data.get("features") or {}
        return cls(
            product_id=data["productId"],
            vector=[float(value) for value in data["vector"]],
            features=ProductFeatures(
                category=features.get("category", FALLBACK_CATEGORY),
                price=features.get("price", 0.0),
                rating=features.get("rating", DEFAULT_RATING),
                sales_count=features.get("salesCount", DEFAULT_SALES_COUNT),
                tags=list(features.get("tags") or []),
            ),
        )


@dataclass
class PriceRange:
    min: float = DEFAULT_MIN_PRICE
    max: float = DEFAULT_MAX_PRICE


@dataclass
class Preferences:
    """Preference summary derived from a user's purchases."""

    favorite_categories: List[str] = field(default_factory=list)
    price_range: PriceRange = field(default_factory=PriceRange)
    average_rating: float = DEFAULT_RATING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "favoriteCategories": list(self.favorite_categories),
            "priceRange": {"min": self.price_range.min, "max": self.price_range.max},
            "averageRating": self.average_rating,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Preferences":
        price_range = data.get("priceRange") or {}
        return cls(
            favorite_categories=list(data.get("favoriteCategories") or []),
            price_range=PriceRange(
                min=price_range.get("min", DEFAULT_MIN_PRICE),
                max=price_range.get("max", DEFAULT_MAX_PRICE),
            ),
            average_rating=data.get("averageRating", DEFAULT_RATING),
        )


@dataclass
class UserVector:
    user_id: str
    vector: List[float]
    preferences: Preferences

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "vector": list(self.vector),
            "preferences": self.preferences.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserVector":
        return cls(
            user_id=data["userId"],
            vector=[float(value) for value in data["vector"]],
            preferences=Preferences.from_dict(data.get("preferences") or {}),
        )


def product_rating(product: Dict[str, Any]) -> float:
    """Rating used for a product.

    Placeholder until a ratings subsystem exists: every product rates 3.
    """
    return DEFAULT_RATING


def product_sales_count(product: Dict[str, Any]) -> int:
    """Sales count used for a product.

    Placeholder until sales are aggregated: every product has sold 0 units.
    """
    return DEFAULT_SALES_COUNT


def _slot(vocabulary: Type[Enum], value: Any) -> Optional[int]:
    """Index of value in an enum vocabulary, or None when it is not a member."""
    try:
        member = vocabulary(str(value).lower())
    except ValueError:
        return None
    return list(vocabulary).index(member)


def _multi_hot(vocabulary: Type[Enum], values: Iterable[Any]) -> List[float]:
    vector = [0.0] * len(vocabulary)
    for value in values:
        index = _slot(vocabulary, value)
        if index is not None:
            vector[index] = 1.0
    return vector


def encode_category(category_name: str) -> List[float]:
    """One-hot category segment.

    Unknown names give an all-zero segment; the ``other`` slot is only set
    for the literal name "other".
    """
    return _multi_hot(Category, [category_name])


def encode_category_preferences(categories: Sequence[str]) -> List[float]:
    """Multi-hot category segment over a user's favorite categories."""
    return _multi_hot(Category, categories)


def encode_tags(tags: Sequence[str]) -> List[float]:
    """Multi-hot tag segment; case-insensitive exact matches only."""
    return _multi_hot(Tag, tags)


def normalize_price(price: float) -> float:
    # Clamped at the top only
    return min(price / PRICE_SCALE, 1.0)


def normalize_rating(rating: float) -> float:
    return rating / RATING_SCALE


def normalize_sales_count(sales_count: int) -> float:
    return min(sales_count / SALES_SCALE, 1.0)


def build_product_vector(
    product: Dict[str, Any],
    category_name: Optional[str] = None,
) -> ProductVector:
    """Build the feature vector of a product.

    Args:
        product: Product document with ``_id``, ``price`` and optional ``tags``.
        category_name: Resolved category name; missing names count as "other".

    Returns:
        ProductVector whose vector has PRODUCT_VECTOR_LENGTH entries.
    """
    category = category_name or FALLBACK_CATEGORY
    price = product.get("price", 0)
    tags = list(product.get("tags") or [])
    rating = product_rating(product)
    sales_count = product_sales_count(product)

    vector = (
        encode_category(category)
        + [
            normalize_price(price),
            normalize_rating(rating),
            normalize_sales_count(sales_count),
        ]
        + encode_tags(tags)
    )

    return ProductVector(
        product_id=str(product["_id"]),
        vector=vector,
        features=ProductFeatures(
            category=category,
            price=price,
            rating=rating,
            sales_count=sales_count,
            tags=tags,
        ),
    )


def build_user_vector(user_id: str, preferences: Preferences) -> UserVector:
    """Build the feature vector of a user from their preferences."""
    vector = encode_category_preferences(preferences.favorite_categories) + [
        normalize_price(preferences.price_range.min),
        normalize_price(preferences.price_range.max),
        normalize_rating(preferences.average_rating),
    ]
    return UserVector(user_id=str(user_id), vector=vector, preferences=preferences)


def cosine_similarity(vector_a: Sequence[float], vector_b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when the vectors differ in length or either has zero norm.
    """
    a = np.asarray(vector_a, dtype=float)
    b = np.asarray(vector_b, dtype=float)

    if a.shape != b.shape:
        return 0.0

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = np.dot(a, b) / (norm_a * norm_b)
    return float(np.clip(similarity, -1.0, 1.0))
