"""Recommendation endpoints for the CatalogRec API.

Thin handlers over :class:`RecommendationEngine`: activity tracking plus one
route per recommendation strategy. List routes can annotate their results
with campaign discounts.
"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List

import redis
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from catalogrec.api.dependencies import get_discount_resolver, get_engine
from catalogrec.api.exceptions import CacheUnavailableError, StoreUnavailableError
from catalogrec.api.metrics import metrics_service
from catalogrec.config import (
    DEFAULT_BEST_SELLER_DAYS,
    DEFAULT_BEST_SELLER_LIMIT,
    DEFAULT_BOUGHT_TOGETHER_LIMIT,
    DEFAULT_LIMIT,
    DEFAULT_LISTING_LIMIT,
    DEFAULT_NEW_ARRIVAL_DAYS,
    DEFAULT_RELATED_LIMIT,
    MAX_LIMIT,
)
from catalogrec.recommender.activity import ActivityType
from catalogrec.recommender.discounts import DiscountResolver
from catalogrec.recommender.engine import RecommendationEngine

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/recommendations",
    tags=["recommendations"],
)


class TrackActivityRequest(BaseModel):
    """Request body for activity tracking."""

    userId: str = Field(..., min_length=1, description="User performing the activity")
    productId: str = Field(..., min_length=1, description="Product the activity refers to")
    activityType: ActivityType = Field(..., description="view, purchase or cart_add")


class TrackActivityResponse(BaseModel):
    message: str


class RecommendationListResponse(BaseModel):
    """Response model for every recommendation list.

    Attributes:
        count: Number of returned products.
        items: Product documents, with strategy specific fields such as
            ``similarity`` or ``coPurchaseCount`` and, when requested, the
            discount annotations.
    """

    count: int = Field(..., description="Number of products returned")
    items: List[Dict[str, Any]] = Field(..., description="Recommended products")


@contextmanager
def translate_infrastructure_errors() -> Iterator[None]:
    """Re-raise cache and store connection failures as API exceptions."""
    try:
        yield
    except redis.exceptions.ConnectionError as e:
        logger.error(f"Vector cache unavailable: {e}", exc_info=True)
        raise CacheUnavailableError(e) from e
    except ConnectionError as e:
        logger.error(f"Document store unavailable: {e}", exc_info=True)
        raise StoreUnavailableError(e) from e


def _recommend(
    strategy: str,
    query: Callable[[], List[Dict[str, Any]]],
    resolver: DiscountResolver,
    with_discounts: bool,
) -> RecommendationListResponse:
    start_time = time.time()

    with translate_infrastructure_errors():
        items = query()
        if with_discounts:
            items = resolver.annotate_discounts(items)

    latency_ms = (time.time() - start_time) * 1000
    metrics_service.record_request(latency_ms)

    logger.info(
        "Recommendations served",
        extra={
            "strategy": strategy,
            "count": len(items),
            "with_discounts": with_discounts,
            "latency_ms": round(latency_ms, 2),
        },
    )

    return RecommendationListResponse(count=len(items), items=items)


@router.post("/track-activity", response_model=TrackActivityResponse)
def track_activity(
    request: TrackActivityRequest,
    engine: RecommendationEngine = Depends(get_engine),
) -> TrackActivityResponse:
    """Record a user activity and refresh the affected vectors.

    Example:
        POST /recommendations/track-activity
        {"userId": "u1", "productId": "p1", "activityType": "view"}
    """
    with translate_infrastructure_errors():
        engine.track_activity(request.userId, request.productId, request.activityType)

    return TrackActivityResponse(message="Activity tracked successfully")


@router.get("/personalized/{user_id}", response_model=RecommendationListResponse)
def personalized(
    user_id: str,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    with_discounts: bool = False,
    engine: RecommendationEngine = Depends(get_engine),
    resolver: DiscountResolver = Depends(get_discount_resolver),
) -> RecommendationListResponse:
    """Products ranked by similarity to the user's vector.

    Users without a vector get the popular products.

    Example:
        GET /recommendations/personalized/u1?limit=5
    """
    return _recommend(
        "personalized",
        lambda: engine.get_personalized_recommendations(user_id, limit),
        resolver,
        with_discounts,
    )


@router.get(
    "/frequently-bought-together/{product_id}",
    response_model=RecommendationListResponse,
)
def frequently_bought_together(
    product_id: str,
    limit: int = Query(DEFAULT_BOUGHT_TOGETHER_LIMIT, ge=1, le=MAX_LIMIT),
    with_discounts: bool = False,
    engine: RecommendationEngine = Depends(get_engine),
    resolver: DiscountResolver = Depends(get_discount_resolver),
) -> RecommendationListResponse:
    """Products most often ordered together with a product."""
    return _recommend(
        "frequently_bought_together",
        lambda: engine.get_frequently_bought_together(product_id, limit),
        resolver,
        with_discounts,
    )


@router.get("/popular", response_model=RecommendationListResponse)
def popular(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    with_discounts: bool = False,
    engine: RecommendationEngine = Depends(get_engine),
    resolver: DiscountResolver = Depends(get_discount_resolver),
) -> RecommendationListResponse:
    return _recommend(
        "popular",
        lambda: engine.get_popular_products(limit),
        resolver,
        with_discounts,
    )


@router.get("/category/{category_id}", response_model=RecommendationListResponse)
def category(
    category_id: str,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    with_discounts: bool = False,
    engine: RecommendationEngine = Depends(get_engine),
    resolver: DiscountResolver = Depends(get_discount_resolver),
) -> RecommendationListResponse:
    return _recommend(
        "category",
        lambda: engine.get_category_recommendations(category_id, limit),
        resolver,
        with_discounts,
    )


@router.get("/browsing-history/{user_id}", response_model=RecommendationListResponse)
def browsing_history(
    user_id: str,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    with_discounts: bool = False,
    engine: RecommendationEngine = Depends(get_engine),
    resolver: DiscountResolver = Depends(get_discount_resolver),
) -> RecommendationListResponse:
    """Products the user has not browsed yet."""
    return _recommend(
        "browsing_history",
        lambda: engine.get_browsing_history_recommendations(user_id, limit),
        resolver,
        with_discounts,
    )


@router.get("/best-sellers", response_model=RecommendationListResponse)
def best_sellers(
    limit: int = Query(DEFAULT_BEST_SELLER_LIMIT, ge=1, le=MAX_LIMIT),
    days: int = Query(DEFAULT_BEST_SELLER_DAYS, ge=1, le=365),
    with_discounts: bool = False,
    engine: RecommendationEngine = Depends(get_engine),
    resolver: DiscountResolver = Depends(get_discount_resolver),
) -> RecommendationListResponse:
    """Products with the most units ordered in the last `days` days.

    Example:
        GET /recommendations/best-sellers?limit=8&days=30
    """
    return _recommend(
        "best_sellers",
        lambda: engine.get_best_sellers(limit, days),
        resolver,
        with_discounts,
    )


@router.get("/related/{product_id}", response_model=RecommendationListResponse)
def related(
    product_id: str,
    limit: int = Query(DEFAULT_RELATED_LIMIT, ge=1, le=MAX_LIMIT),
    with_discounts: bool = False,
    engine: RecommendationEngine = Depends(get_engine),
    resolver: DiscountResolver = Depends(get_discount_resolver),
) -> RecommendationListResponse:
    """Products sharing a category or tag with a product."""
    return _recommend(
        "related",
        lambda: engine.get_related_products(product_id, limit),
        resolver,
        with_discounts,
    )


@router.get("/new-arrivals", response_model=RecommendationListResponse)
def new_arrivals(
    limit: int = Query(DEFAULT_LISTING_LIMIT, ge=1, le=MAX_LIMIT),
    days: int = Query(DEFAULT_NEW_ARRIVAL_DAYS, ge=1, le=365),
    with_discounts: bool = False,
    engine: RecommendationEngine = Depends(get_engine),
    resolver: DiscountResolver = Depends(get_discount_resolver),
) -> RecommendationListResponse:
    return _recommend(
        "new_arrivals",
        lambda: engine.get_new_arrivals(limit, days),
        resolver,
        with_discounts,
    )


@router.get("/featured", response_model=RecommendationListResponse)
def featured(
    limit: int = Query(DEFAULT_LISTING_LIMIT, ge=1, le=MAX_LIMIT),
    with_discounts: bool = False,
    engine: RecommendationEngine = Depends(get_engine),
    resolver: DiscountResolver = Depends(get_discount_resolver),
) -> RecommendationListResponse:
    return _recommend(
        "featured",
        lambda: engine.get_featured_products(limit),
        resolver,
        with_discounts,
    )
