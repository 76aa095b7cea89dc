"""CLI script for getting product recommendations.

Useful for testing and evaluation. Loads a catalog from CSV files, optionally
replays some activities, runs one recommendation strategy and prints the
result to the console.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from catalogrec.config import DEFAULT_BEST_SELLER_DAYS, DEFAULT_LIMIT
from catalogrec.recommender.cache import InMemoryVectorCache
from catalogrec.recommender.discounts import DiscountResolver
from catalogrec.recommender.engine import RecommendationEngine
from catalogrec.recommender.utils import load_catalog

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Strategies that need a user, product or category id
TARGETED_STRATEGIES = {
    "personalized": "user",
    "bought-together": "product",
    "category": "category",
    "browsing": "user",
    "related": "product",
}
STRATEGIES = list(TARGETED_STRATEGIES) + ["popular", "best-sellers", "new-arrivals", "featured"]


def parse_activity(value: str) -> Dict[str, str]:
    """Parse ``PRODUCT_ID:TYPE`` into an activity."""
    product_id, sep, activity_type = value.partition(":")
    if not sep or not product_id or not activity_type:
        raise argparse.ArgumentTypeError(
            f"Expected PRODUCT_ID:TYPE, got '{value}'"
        )
    return {"product_id": product_id, "activity_type": activity_type}


def get_recommendations(
    engine: RecommendationEngine,
    strategy: str,
    target: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    days: int = DEFAULT_BEST_SELLER_DAYS,
) -> List[Dict[str, Any]]:
    """Run one recommendation strategy.

    Args:
        engine: Engine over the loaded catalog
        strategy: One of STRATEGIES
        target: User, product or category id for targeted strategies
        limit: Number of products to return
        days: Look-back window for best sellers and new arrivals

    Returns:
        Recommended product documents
    """
    if strategy == "personalized":
        return engine.get_personalized_recommendations(target, limit)
    if strategy == "bought-together":
        return engine.get_frequently_bought_together(target, limit)
    if strategy == "category":
        return engine.get_category_recommendations(target, limit)
    if strategy == "browsing":
        return engine.get_browsing_history_recommendations(target, limit)
    if strategy == "related":
        return engine.get_related_products(target, limit)
    if strategy == "best-sellers":
        return engine.get_best_sellers(limit, days)
    if strategy == "new-arrivals":
        return engine.get_new_arrivals(limit, days)
    if strategy == "featured":
        return engine.get_featured_products(limit)
    return engine.get_popular_products(limit)


def format_product(product: Dict[str, Any]) -> str:
    line = f"{product['_id']:<10} {product.get('name', ''):<30} {product.get('price', 0):>10.2f}"
    for key in ("similarity", "coPurchaseCount", "orderCount"):
        if key in product:
            line += f"  {key}={product[key]}"
    if product.get("hasDiscount"):
        line += f"  -> {product['discountedPrice']:.2f} (-{product['discountPercentage']}%)"
    return line


def main() -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Get product recommendations from a CSV catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/recommend_cli.py popular --limit 5
  python scripts/recommend_cli.py best-sellers --days 7 --with-discounts
  python scripts/recommend_cli.py bought-together p3
  python scripts/recommend_cli.py personalized u1 --track p1:purchase --track p2:view
        """
    )

    parser.add_argument(
        "strategy",
        choices=STRATEGIES,
        help="Recommendation strategy"
    )

    parser.add_argument(
        "target",
        nargs="?",
        help="User, product or category id (required by targeted strategies)"
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_LIMIT,
        help=f"Number of recommendations to return (default: {DEFAULT_LIMIT})"
    )

    parser.add_argument(
        "--days",
        type=int,
        default=DEFAULT_BEST_SELLER_DAYS,
        help=f"Best-seller and new-arrival window in days (default: {DEFAULT_BEST_SELLER_DAYS})"
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        default="data",
        help="Directory containing the catalog CSV files (default: data)"
    )

    parser.add_argument(
        "--track",
        type=parse_activity,
        action="append",
        default=[],
        metavar="PRODUCT_ID:TYPE",
        help="Activity of the target user to record first (repeatable)"
    )

    parser.add_argument(
        "--with-discounts",
        action="store_true",
        help="Annotate results with campaign discounts"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    if args.strategy in TARGETED_STRATEGIES and not args.target:
        parser.error(f"{args.strategy} needs a {TARGETED_STRATEGIES[args.strategy]} id")
    if args.track and TARGETED_STRATEGIES.get(args.strategy) != "user":
        parser.error("--track needs a user strategy (personalized or browsing)")

    try:
        store = load_catalog(args.data_dir)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: Could not load catalog from {args.data_dir}", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        sys.exit(1)

    engine = RecommendationEngine(store, InMemoryVectorCache())

    try:
        for activity in args.track:
            engine.track_activity(args.target, activity["product_id"], activity["activity_type"])
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    products = get_recommendations(
        engine,
        args.strategy,
        target=args.target,
        limit=args.limit,
        days=args.days,
    )
    if args.with_discounts:
        products = DiscountResolver(store).annotate_discounts(products)

    # Print results
    heading = f"{args.strategy} recommendations"
    if args.target:
        heading += f" for {args.target}"
    print(f"\n{heading} ({len(products)} products):")
    for product in products:
        print(f"  {format_product(product)}")

    print()


if __name__ == "__main__":
    main()
