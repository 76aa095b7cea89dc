"""Tests for the in-memory document store and the CSV catalog loader."""

import json

import pandas as pd
import pytest

from catalogrec.recommender.discounts import DiscountResolver
from catalogrec.recommender.store import (
    ASCENDING,
    DESCENDING,
    InMemoryDocumentStore,
    matches,
)
from catalogrec.recommender.utils import load_catalog, resolve_category_names

from conftest import NOW, ids


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(
        {
            "products": [
                {"_id": "a", "price": 30, "tags": ["sale"], "isActive": True},
                {"_id": "b", "price": 10, "tags": [], "isActive": True},
                {"_id": "c", "price": 20, "tags": ["sale", "new"], "isActive": False},
                {"_id": "d", "price": 10, "isActive": True},
            ],
            "orders": [
                {"_id": "o1", "status": "shipped",
                 "items": [{"productId": "a", "quantity": 2}, {"productId": "b", "quantity": 1}]},
                {"_id": "o2", "status": "pending",
                 "items": [{"productId": "a", "quantity": 5}]},
                {"_id": "o3", "status": "shipped",
                 "items": [{"productId": "b", "quantity": 4}]},
            ],
        }
    )


def test_equality_and_array_containment(store):
    """Test that array fields match when they contain the value."""
    assert ids(store.find("products", {"tags": "sale"})) == ["a", "c"]
    assert ids(store.find("products", {"isActive": True})) == ["a", "b", "d"]


def test_dotted_path_into_array_of_documents(store):
    assert ids(store.find("orders", {"items.productId": "b"})) == ["o1", "o3"]


def test_comparison_and_membership_operators(store):
    assert ids(store.find("products", {"price": {"$gte": 20}})) == ["a", "c"]
    assert ids(store.find("products", {"price": {"$lte": 10, "$gt": 5}})) == ["b", "d"]
    assert ids(store.find("products", {"_id": {"$in": ["d", "a"]}})) == ["a", "d"]
    assert ids(store.find("products", {"_id": {"$nin": ["a", "b"]}})) == ["c", "d"]


def test_size_operator_requires_an_array():
    """Test that $size only matches existing arrays of that length."""
    assert matches({"tags": []}, {"tags": {"$size": 0}})
    assert not matches({}, {"tags": {"$size": 0}})
    assert not matches({"tags": ["x"]}, {"tags": {"$size": 0}})


def test_or_and_combinators(store):
    query = {"$or": [{"tags": "new"}, {"price": 30}], "isActive": True}
    assert ids(store.find("products", query)) == ["a"]

    query = {"$and": [{"price": {"$lte": 10}}, {"_id": {"$in": ["b", "c"]}}]}
    assert ids(store.find("products", query)) == ["b"]


def test_unsupported_operator_raises(store):
    with pytest.raises(ValueError, match="Unsupported filter operator"):
        store.find("products", {"price": {"$ne": 10}})


def test_sort_is_stable_and_limit_applies_after(store):
    """Test that equal sort keys keep insertion order."""
    results = store.find("products", sort=[("price", ASCENDING)], limit=3)
    assert ids(results) == ["b", "d", "c"]

    results = store.find("products", sort=[("price", DESCENDING), ("_id", ASCENDING)])
    assert ids(results) == ["a", "c", "b", "d"]


def test_returned_documents_are_copies(store):
    """Test that mutating a result leaves the stored document unchanged."""
    document = store.find_by_id("products", "a")
    document["tags"].append("mutated")

    assert store.find_by_id("products", "a")["tags"] == ["sale"]


def test_replace_one_with_upsert(store):
    store.replace_one("users", {"userId": "u1"}, {"userId": "u1", "n": 1}, upsert=True)
    store.replace_one("users", {"userId": "u1"}, {"userId": "u1", "n": 2}, upsert=True)

    assert len(store.find("users")) == 1
    assert store.find_one("users", {"userId": "u1"})["n"] == 2


def test_aggregate_sum_groups_unwound_items(store):
    totals = store.aggregate_sum(
        "orders",
        match={"status": "shipped"},
        unwind="items",
        group_by="productId",
        sum_field="quantity",
    )

    assert totals == {"a": 2, "b": 5}


def test_resolve_category_names(catalog_store):
    products = catalog_store.find("products", {"_id": {"$in": ["p1", "p7"]}})
    products.append({"_id": "px", "category": "missing"})

    assert resolve_category_names(catalog_store, products) == {
        "p1": "electronics",
        "p7": "gadgets",
        "px": None,
    }


def test_load_catalog_from_csv(tmp_path):
    """Test loading categories, products and campaigns from CSV files."""
    pd.DataFrame([{"_id": "c1", "name": "books"}]).to_csv(
        tmp_path / "categories.csv", index=False
    )
    pd.DataFrame(
        [
            {"_id": "p1", "name": "Novel", "price": 12.5, "category": "c1",
             "tags": json.dumps(["new"]), "isActive": True},
            {"_id": "p2", "name": "Atlas", "price": 40.0, "category": "c1",
             "tags": "", "isActive": False},
        ]
    ).to_csv(tmp_path / "products.csv", index=False)
    pd.DataFrame(
        [
            {"_id": "k1", "discountType": "percentage", "discountValue": 10,
             "productIds": "[]", "categoryIds": "",
             "startDate": "2024-01-01T00:00:00+00:00",
             "endDate": "2024-12-31T00:00:00+00:00"},
        ]
    ).to_csv(tmp_path / "campaigns.csv", index=False)

    store = load_catalog(str(tmp_path))

    assert ids(store.find("products", {"isActive": True})) == ["p1"]
    assert store.find_by_id("products", "p1")["tags"] == ["new"]
    assert store.find_by_id("products", "p2")["tags"] == []

    campaign = store.find_by_id("campaigns", "k1")
    assert campaign["isActive"] is True
    assert campaign["categoryIds"] == []
    assert campaign["startDate"].year == 2024
    assert campaign["startDate"].tzinfo is not None
    assert store.find("orders") == []


def test_load_catalog_missing_required_file(tmp_path):
    pd.DataFrame([{"_id": "c1", "name": "books"}]).to_csv(
        tmp_path / "categories.csv", index=False
    )

    with pytest.raises(FileNotFoundError):
        load_catalog(str(tmp_path))


def test_load_catalog_missing_required_columns(tmp_path):
    pd.DataFrame([{"_id": "c1", "name": "books"}]).to_csv(
        tmp_path / "categories.csv", index=False
    )
    pd.DataFrame([{"_id": "p1", "name": "Novel"}]).to_csv(
        tmp_path / "products.csv", index=False
    )

    with pytest.raises(ValueError, match="missing required columns"):
        load_catalog(str(tmp_path))


def test_load_catalog_defaults_missing_columns(tmp_path):
    """Test that campaigns without scope columns apply platform-wide."""
    pd.DataFrame([{"_id": "c1", "name": "books"}]).to_csv(
        tmp_path / "categories.csv", index=False
    )
    pd.DataFrame(
        [{"_id": "p1", "name": "Novel", "price": 20.0, "category": "c1"}]
    ).to_csv(tmp_path / "products.csv", index=False)
    pd.DataFrame(
        [
            {"_id": "k1", "discountType": "percentage", "discountValue": 25,
             "startDate": "2024-01-01T00:00:00+00:00",
             "endDate": "2024-12-31T00:00:00+00:00"},
        ]
    ).to_csv(tmp_path / "campaigns.csv", index=False)

    store = load_catalog(str(tmp_path))

    product = store.find_by_id("products", "p1")
    assert product["isActive"] is True
    assert product["isFeatured"] is False
    assert product["stock"] == 0

    campaign = store.find_by_id("campaigns", "k1")
    assert campaign["productIds"] == []
    assert campaign["categoryIds"] == []

    resolver = DiscountResolver(store, clock=lambda: NOW)
    assert resolver.resolve_effective_price(product) == 15.0
