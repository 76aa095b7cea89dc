"""CatalogRec: product recommendation core for an e-commerce backend.

This package tracks user activity, builds hand-engineered feature vectors for
users and products, ranks products by cosine similarity, mines
"frequently bought together" pairs from orders and resolves campaign
discounts into a single effective price.

Modules:
    api: FastAPI application and REST API endpoints
    recommender: activity tracking, vectors, caching and ranking logic
    config: environment-driven settings
"""

__version__ = "0.1.0"
