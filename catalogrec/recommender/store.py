"""Document store interface used by the recommendation core.

Catalog, order, campaign and activity records live in an external document
store. The core only needs a handful of query operations, described by
:class:`DocumentStore`. :class:`InMemoryDocumentStore` implements them over
plain dictionaries for development, scripts and tests.

Filters use a small Mongo-style dialect:

- ``{"field": value}`` equality; array fields match when they contain value
- ``{"items.productId": value}`` dotted paths reach into arrays of documents
- ``$in``, ``$nin``, ``$gte``, ``$lte``, ``$gt``, ``$size``
- top-level ``$or`` / ``$and`` lists of filters
"""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

# Configure module logger
logger = logging.getLogger(__name__)

# Collection names
PRODUCTS = "products"
CATEGORIES = "categories"
ORDERS = "orders"
CAMPAIGNS = "campaigns"
USER_ACTIVITIES = "user_activities"

Filter = Dict[str, Any]
SortSpec = Sequence[Tuple[str, int]]

ASCENDING = 1
DESCENDING = -1


class DocumentStore(ABC):
    """Query interface over named collections of documents."""

    @abstractmethod
    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return documents matching filter, in natural order unless sorted."""

    @abstractmethod
    def insert_one(self, collection: str, document: Dict[str, Any]) -> str:
        """Insert a document and return its ``_id``."""

    @abstractmethod
    def replace_one(
        self,
        collection: str,
        filter: Filter,
        document: Dict[str, Any],
        upsert: bool = False,
    ) -> None:
        """Replace the first document matching filter."""

    @abstractmethod
    def aggregate_sum(
        self,
        collection: str,
        match: Optional[Filter],
        unwind: str,
        group_by: str,
        sum_field: str,
    ) -> Dict[Any, float]:
        """Group unwound sub-documents by a key and sum a numeric field.

        Args:
            collection: Collection to aggregate.
            match: Filter applied to the parent documents first.
            unwind: Array field whose elements are grouped (e.g. ``"items"``).
            group_by: Field of each element used as the group key.
            sum_field: Numeric field of each element to total.

        Returns:
            Mapping of group key to total, in first-encounter order.
        """

    def find_one(
        self, collection: str, filter: Filter
    ) -> Optional[Dict[str, Any]]:
        results = self.find(collection, filter, limit=1)
        return results[0] if results else None

    def find_by_id(self, collection: str, doc_id: Any) -> Optional[Dict[str, Any]]:
        return self.find_one(collection, {"_id": doc_id})


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed document store.

    Documents are deep-copied on the way in and out, so every caller owns the
    records it receives.
    """

    def __init__(self, collections: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self._collections: Dict[str, List[Dict[str, Any]]] = {}
        for name, documents in (collections or {}).items():
            self.insert_many(name, documents)

    def insert_many(self, collection: str, documents: List[Dict[str, Any]]) -> List[str]:
        return [self.insert_one(collection, document) for document in documents]

    def insert_one(self, collection: str, document: Dict[str, Any]) -> str:
        stored = copy.deepcopy(document)
        stored.setdefault("_id", uuid.uuid4().hex)
        self._collections.setdefault(collection, []).append(stored)
        return stored["_id"]

    def replace_one(
        self,
        collection: str,
        filter: Filter,
        document: Dict[str, Any],
        upsert: bool = False,
    ) -> None:
        documents = self._collections.setdefault(collection, [])
        for index, existing in enumerate(documents):
            if matches(existing, filter):
                replacement = copy.deepcopy(document)
                replacement["_id"] = existing["_id"]
                documents[index] = replacement
                return

        if upsert:
            doc_id = self.insert_one(collection, document)
            logger.debug(
                "Upserted document",
                extra={"collection": collection, "doc_id": doc_id},
            )

    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        results = [
            document
            for document in self._collections.get(collection, [])
            if matches(document, filter or {})
        ]

        # Stable sorts applied from the last key to the first
        for field, direction in reversed(list(sort or [])):
            results.sort(
                key=lambda document: _sort_key(document, field),
                reverse=direction == DESCENDING,
            )

        if limit is not None:
            results = results[: max(limit, 0)]

        return [copy.deepcopy(document) for document in results]

    def aggregate_sum(
        self,
        collection: str,
        match: Optional[Filter],
        unwind: str,
        group_by: str,
        sum_field: str,
    ) -> Dict[Any, float]:
        totals: Dict[Any, float] = {}
        for document in self.find(collection, match):
            for element in document.get(unwind) or []:
                key = element.get(group_by)
                totals[key] = totals.get(key, 0) + (element.get(sum_field) or 0)
        return totals


def matches(document: Dict[str, Any], filter: Filter) -> bool:
    """Check whether a document satisfies a filter."""
    for key, condition in filter.items():
        if key == "$or":
            if not any(matches(document, sub_filter) for sub_filter in condition):
                return False
        elif key == "$and":
            if not all(matches(document, sub_filter) for sub_filter in condition):
                return False
        elif not _field_matches(_resolve(document, key), condition):
            return False
    return True


def _resolve(document: Dict[str, Any], path: str) -> List[Any]:
    """Collect the values at a dotted path, descending through arrays."""
    values: List[Any] = [document]
    for part in path.split("."):
        next_values = []
        for value in values:
            if isinstance(value, list):
                next_values.extend(
                    item[part] for item in value if isinstance(item, dict) and part in item
                )
            elif isinstance(value, dict) and part in value:
                next_values.append(value[part])
        values = next_values
    return values


def _candidates(values: List[Any]) -> Iterator[Any]:
    for value in values:
        yield value
        if isinstance(value, list):
            yield from value


def _is_operator_condition(condition: Any) -> bool:
    return isinstance(condition, dict) and bool(condition) and all(
        key.startswith("$") for key in condition
    )


def _field_matches(values: List[Any], condition: Any) -> bool:
    if not _is_operator_condition(condition):
        return any(candidate == condition for candidate in _candidates(values))

    for operator, operand in condition.items():
        if operator == "$in":
            ok = any(candidate in operand for candidate in _candidates(values))
        elif operator == "$nin":
            ok = not any(candidate in operand for candidate in _candidates(values))
        elif operator == "$size":
            ok = any(isinstance(value, list) and len(value) == operand for value in values)
        elif operator in _COMPARATORS:
            compare = _COMPARATORS[operator]
            ok = any(
                value is not None and not isinstance(value, list) and compare(value, operand)
                for value in values
            )
        else:
            raise ValueError(f"Unsupported filter operator: {operator}")

        if not ok:
            return False
    return True


_COMPARATORS = {
    "$gte": lambda value, operand: value >= operand,
    "$lte": lambda value, operand: value <= operand,
    "$gt": lambda value, operand: value > operand,
}


def _sort_key(document: Dict[str, Any], field: str) -> Tuple[int, Any]:
    values = _resolve(document, field)
    if not values or values[0] is None:
        # Missing values sort first, as in Mongo
        return (0, 0)
    return (1, values[0])

