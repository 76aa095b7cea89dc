"""Utility functions for the recommendation core.

This module provides helpers shared by the analyzers and the engine (category
resolution) and the CSV catalog loader used by the API and scripts to seed an
in-memory document store.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from catalogrec.recommender.store import (
    CAMPAIGNS,
    CATEGORIES,
    ORDERS,
    PRODUCTS,
    DocumentStore,
    InMemoryDocumentStore,
)

# Configure module logger
logger = logging.getLogger(__name__)

# Catalog CSV filenames and their required columns
CATALOG_FILES = {
    CATEGORIES: ("categories.csv", {"_id", "name"}),
    PRODUCTS: ("products.csv", {"_id", "name", "price", "category"}),
    ORDERS: ("orders.csv", {"_id", "userId", "items", "status", "createdAt"}),
    CAMPAIGNS: (
        "campaigns.csv",
        {"_id", "discountType", "discountValue", "startDate", "endDate"},
    ),
}

# Columns holding JSON-encoded lists
LIST_COLUMNS = {"tags", "items", "productIds", "categoryIds"}
DATE_COLUMNS = {"createdAt", "startDate", "endDate"}
BOOL_COLUMNS = {"isActive", "isFeatured"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_category_names(
    store: DocumentStore, products: Iterable[Dict[str, Any]]
) -> Dict[str, Optional[str]]:
    """Map each product id to its category name.

    Products whose category reference cannot be resolved map to None.
    """
    products = list(products)
    category_ids = sorted({str(p["category"]) for p in products if p.get("category")})

    names: Dict[str, str] = {}
    if category_ids:
        for category in store.find(CATEGORIES, {"_id": {"$in": category_ids}}):
            names[str(category["_id"])] = category.get("name")

    return {
        str(product["_id"]): names.get(str(product.get("category")))
        for product in products
    }


def _read_collection_csv(csv_path: Path, required_columns: set) -> List[Dict[str, Any]]:
    """Read one catalog CSV into a list of documents.

    Raises:
        ValueError: If the CSV is missing required columns.
    """
    df = pd.read_csv(csv_path, dtype={"_id": str, "category": str, "userId": str})

    if not required_columns.issubset(df.columns):
        missing = required_columns - set(df.columns)
        raise ValueError(f"{csv_path.name} missing required columns: {missing}")

    for column in DATE_COLUMNS & set(df.columns):
        df[column] = pd.to_datetime(df[column], utc=True)

    documents = []
    for record in df.to_dict(orient="records"):
        document = {}
        for key, value in record.items():
            if key in LIST_COLUMNS:
                # Empty cells are empty lists; platform-wide campaigns rely on it
                document[key] = json.loads(value) if isinstance(value, str) and value else []
                continue
            if not isinstance(value, str) and pd.isna(value):
                continue
            if key in DATE_COLUMNS:
                value = value.to_pydatetime()
            elif key in BOOL_COLUMNS:
                value = bool(value)
            document[key] = value
        documents.append(document)

    return documents


def load_catalog(data_dir: str) -> InMemoryDocumentStore:
    """Load catalog CSVs from a directory into an in-memory document store.

    Expects ``categories.csv`` and ``products.csv``; ``orders.csv`` and
    ``campaigns.csv`` are optional. List columns (``tags``, ``items``,
    ``productIds``, ``categoryIds``) hold JSON arrays.

    Args:
        data_dir: Directory containing the catalog CSV files.

    Returns:
        InMemoryDocumentStore seeded with the catalog collections.

    Raises:
        FileNotFoundError: If the directory or a required CSV does not exist.
        ValueError: If a CSV is missing required columns.

    Example:
        >>> store = load_catalog("data")
        >>> len(store.find("products", {"isActive": True}))
    """
    data_path = Path(data_dir)
    if not data_path.exists():
        raise FileNotFoundError(f"Catalog directory does not exist: {data_dir}")

    logger.info(f"Loading catalog from {data_dir}")
    store = InMemoryDocumentStore()

    for collection, (filename, required_columns) in CATALOG_FILES.items():
        csv_path = data_path / filename
        if not csv_path.exists():
            if collection in (CATEGORIES, PRODUCTS):
                raise FileNotFoundError(f"Catalog file not found: {csv_path}")
            logger.warning(f"Optional catalog file not found: {csv_path}")
            continue

        documents = _read_collection_csv(csv_path, required_columns)
        if collection == PRODUCTS:
            for document in documents:
                document.setdefault("isActive", True)
                document.setdefault("isFeatured", False)
                document.setdefault("stock", 0)
        if collection == CAMPAIGNS:
            for document in documents:
                document.setdefault("isActive", True)
                document.setdefault("productIds", [])
                document.setdefault("categoryIds", [])

        store.insert_many(collection, documents)
        logger.info(f"Loaded {len(documents)} {collection}")

    return store
