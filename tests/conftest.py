"""Shared fixtures: a small seeded catalog and an engine over it."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from catalogrec.recommender.cache import InMemoryVectorCache
from catalogrec.recommender.engine import RecommendationEngine
from catalogrec.recommender.store import InMemoryDocumentStore

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def days_ago(days: int) -> datetime:
    return NOW - timedelta(days=days)


def ids(products: List[Dict[str, Any]]) -> List[str]:
    return [product["_id"] for product in products]


CATEGORIES = [
    {"_id": "c1", "name": "electronics"},
    {"_id": "c2", "name": "books"},
    {"_id": "c3", "name": "clothing"},
    {"_id": "c4", "name": "gadgets"},
]

PRODUCTS = [
    {"_id": "p1", "name": "Laptop", "price": 900.0, "category": "c1",
     "tags": ["new", "premium"], "isActive": True, "stock": 5, "createdAt": days_ago(40)},
    {"_id": "p2", "name": "Phone", "price": 500.0, "category": "c1",
     "tags": ["trending"], "isActive": True, "stock": 0, "createdAt": days_ago(35)},
    {"_id": "p3", "name": "Novel", "price": 15.0, "category": "c2",
     "tags": [], "isActive": True, "stock": 40, "createdAt": days_ago(30)},
    {"_id": "p4", "name": "Cookbook", "price": 25.0, "category": "c2",
     "tags": ["sale"], "isActive": True, "stock": 12, "isFeatured": True, "createdAt": days_ago(20)},
    {"_id": "p5", "name": "T-Shirt", "price": 20.0, "category": "c3",
     "tags": [], "isActive": True, "stock": 30, "createdAt": days_ago(15)},
    {"_id": "p6", "name": "Jacket", "price": 120.0, "category": "c3",
     "tags": [], "isActive": False, "stock": 4, "isFeatured": True, "createdAt": days_ago(1)},
    {"_id": "p7", "name": "Gizmo", "price": 50.0, "category": "c4",
     "tags": [], "isActive": True, "stock": 7, "createdAt": days_ago(10)},
    {"_id": "p8", "name": "Headphones", "price": 80.0, "category": "c1",
     "tags": ["popular"], "isActive": True, "stock": 9, "isFeatured": True, "createdAt": days_ago(5)},
]

ORDERS = [
    {"_id": "o1", "userId": "u1", "status": "completed", "createdAt": days_ago(2),
     "items": [{"productId": "p1", "quantity": 1}, {"productId": "p8", "quantity": 2}]},
    {"_id": "o2", "userId": "u2", "status": "shipped", "createdAt": days_ago(5),
     "items": [{"productId": "p1", "quantity": 1}, {"productId": "p8", "quantity": 1},
               {"productId": "p3", "quantity": 1}]},
    {"_id": "o3", "userId": "u3", "status": "completed", "createdAt": days_ago(10),
     "items": [{"productId": "p1", "quantity": 1}, {"productId": "p6", "quantity": 1}]},
    {"_id": "o4", "userId": "u4", "status": "cancelled", "createdAt": days_ago(3),
     "items": [{"productId": "p1", "quantity": 1}, {"productId": "p5", "quantity": 1}]},
    {"_id": "o5", "userId": "u5", "status": "delivered", "createdAt": days_ago(1),
     "items": [{"productId": "p3", "quantity": 3}, {"productId": "p4", "quantity": 1}]},
    {"_id": "o6", "userId": "u6", "status": "processing", "createdAt": days_ago(60),
     "items": [{"productId": "p2", "quantity": 5}]},
]

# p2 is out of stock; p4, p6 and p8 are featured

# Active products by ascending price
POPULAR_ORDER = ["p3", "p5", "p4", "p7", "p8", "p2", "p1"]


@pytest.fixture
def catalog_store() -> InMemoryDocumentStore:
    """Fresh in-memory store seeded with the sample catalog."""
    return InMemoryDocumentStore(
        {
            "categories": CATEGORIES,
            "products": PRODUCTS,
            "orders": ORDERS,
        }
    )


@pytest.fixture
def vector_cache() -> InMemoryVectorCache:
    return InMemoryVectorCache()


@pytest.fixture
def engine(catalog_store, vector_cache) -> RecommendationEngine:
    return RecommendationEngine(catalog_store, vector_cache, clock=lambda: NOW)
