"""Generate a fake product catalog for testing and development.

Writes the four CSV files read by ``load_catalog``: categories, products,
orders and campaigns. List columns hold JSON arrays.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_catalog
        frames = generate_fake_catalog(num_products=200)
"""

import argparse
import json
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from catalogrec.recommender.discounts import DiscountType
from catalogrec.recommender.vectors import Category, Tag

# Default configuration constants
DEFAULT_NUM_PRODUCTS = 100
DEFAULT_NUM_USERS = 50
DEFAULT_NUM_ORDERS = 400
DEFAULT_NUM_CAMPAIGNS = 5
DEFAULT_DAYS_BACK = 90
SECONDS_PER_DAY = 86400

ORDER_STATUSES = ["pending", "processing", "shipped", "delivered", "completed", "cancelled"]
INACTIVE_RATIO = 0.1
SOLD_OUT_RATIO = 0.1
MAX_ITEMS_PER_ORDER = 4


def _random_timestamp(start: datetime, end: datetime) -> datetime:
    days_range = max((end - start).days, 1)
    return start + timedelta(
        days=random.randrange(days_range), seconds=random.randrange(SECONDS_PER_DAY)
    )


def generate_fake_catalog(
    num_products: int = DEFAULT_NUM_PRODUCTS,
    num_users: int = DEFAULT_NUM_USERS,
    num_orders: int = DEFAULT_NUM_ORDERS,
    num_campaigns: int = DEFAULT_NUM_CAMPAIGNS,
    end_date: Optional[datetime] = None,
    seed: Optional[int] = None,
) -> Dict[str, pd.DataFrame]:
    """Generate a synthetic catalog.

    Args:
        num_products: Number of products. Must be positive.
        num_users: Number of distinct users placing orders. Must be positive.
        num_orders: Number of orders. Must be positive.
        num_campaigns: Number of campaigns; the first one is platform-wide.
        end_date: Latest order timestamp; defaults to now (UTC).
        seed: Seed for reproducible output.

    Returns:
        Mapping of collection name (``categories``, ``products``, ``orders``,
        ``campaigns``) to a DataFrame.

    Raises:
        ValueError: If any count is non-positive (campaigns may be zero).
    """
    if num_products <= 0 or num_users <= 0 or num_orders <= 0:
        raise ValueError("num_products, num_users, and num_orders must be positive")
    if num_campaigns < 0:
        raise ValueError("num_campaigns must not be negative")

    rng_state = random.getstate()
    if seed is not None:
        random.seed(seed)

    try:
        if end_date is None:
            end_date = datetime.now(timezone.utc)
        start_date = end_date - timedelta(days=DEFAULT_DAYS_BACK)

        categories = pd.DataFrame(
            [{"_id": f"c{i + 1}", "name": category.value} for i, category in enumerate(Category)]
        )
        category_ids = list(categories["_id"])

        products = []
        for i in range(num_products):
            products.append(
                {
                    "_id": f"p{i + 1}",
                    "name": f"Product {i + 1}",
                    "price": round(random.uniform(5, 1200), 2),
                    "category": random.choice(category_ids),
                    "tags": json.dumps(
                        random.sample([tag.value for tag in Tag], k=random.randint(0, 3))
                    ),
                    "isActive": random.random() >= INACTIVE_RATIO,
                    "isFeatured": random.random() < 0.1,
                    "stock": (
                        0 if random.random() < SOLD_OUT_RATIO else random.randint(1, 200)
                    ),
                    "createdAt": _random_timestamp(start_date, end_date).isoformat(),
                }
            )
        products_df = pd.DataFrame(products)
        prices = dict(zip(products_df["_id"], products_df["price"]))

        orders = []
        for i in range(num_orders):
            product_ids = random.sample(
                list(prices), k=min(random.randint(1, MAX_ITEMS_PER_ORDER), num_products)
            )
            items = [
                {
                    "productId": product_id,
                    "quantity": random.randint(1, 3),
                    "price": prices[product_id],
                }
                for product_id in product_ids
            ]
            orders.append(
                {
                    "_id": f"o{i + 1}",
                    "userId": f"u{random.randint(1, num_users)}",
                    "items": json.dumps(items),
                    "status": random.choice(ORDER_STATUSES),
                    "createdAt": _random_timestamp(start_date, end_date).isoformat(),
                }
            )
        orders_df = pd.DataFrame(orders).sort_values("createdAt").reset_index(drop=True)

        campaigns = []
        for i in range(num_campaigns):
            discount_type = random.choice(list(DiscountType))
            if discount_type is DiscountType.PERCENTAGE:
                discount_value = random.choice([5, 10, 15, 20, 25])
            else:
                discount_value = random.choice([5, 10, 20, 50])

            # Platform-wide, then alternating product and category scopes
            product_scope = []
            category_scope = []
            if i % 2 == 1:
                product_scope = random.sample(list(prices), k=min(5, num_products))
            elif i > 0:
                category_scope = [random.choice(category_ids)]

            campaigns.append(
                {
                    "_id": f"k{i + 1}",
                    "name": f"Campaign {i + 1}",
                    "discountType": discount_type.value,
                    "discountValue": discount_value,
                    "productIds": json.dumps(product_scope),
                    "categoryIds": json.dumps(category_scope),
                    "startDate": (end_date - timedelta(days=7)).isoformat(),
                    "endDate": (end_date + timedelta(days=random.randint(1, 30))).isoformat(),
                    "isActive": True,
                }
            )
        campaigns_df = pd.DataFrame(
            campaigns,
            columns=[
                "_id",
                "name",
                "discountType",
                "discountValue",
                "productIds",
                "categoryIds",
                "startDate",
                "endDate",
                "isActive",
            ],
        )
    finally:
        if seed is not None:
            random.setstate(rng_state)

    return {
        "categories": categories,
        "products": products_df,
        "orders": orders_df,
        "campaigns": campaigns_df,
    }


def save_catalog(frames: Dict[str, pd.DataFrame], data_dir: Path) -> None:
    """Write each frame to ``<data_dir>/<collection>.csv``."""
    data_dir.mkdir(parents=True, exist_ok=True)
    for collection, df in frames.items():
        df.to_csv(data_dir / f"{collection}.csv", index=False)


def main() -> None:
    """Generate a catalog and save it under data/."""
    parser = argparse.ArgumentParser(description="Generate a fake product catalog")
    parser.add_argument("--products", type=int, default=DEFAULT_NUM_PRODUCTS)
    parser.add_argument("--users", type=int, default=DEFAULT_NUM_USERS)
    parser.add_argument("--orders", type=int, default=DEFAULT_NUM_ORDERS)
    parser.add_argument("--campaigns", type=int, default=DEFAULT_NUM_CAMPAIGNS)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path(__file__).parent.parent / "data",
        help="Directory for the CSV files (default: data/)",
    )
    args = parser.parse_args()

    print(f"Generating {args.products} products and {args.orders} orders...")

    try:
        frames = generate_fake_catalog(
            num_products=args.products,
            num_users=args.users,
            num_orders=args.orders,
            num_campaigns=args.campaigns,
            seed=args.seed,
        )
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    save_catalog(frames, args.output_dir)

    products = frames["products"]
    orders = frames["orders"]
    print(f"\nCatalog generated successfully!")
    print(f"Saved to: {args.output_dir}")
    print(f"\nProducts preview:")
    print(products.head(10))
    print(f"\nCatalog summary:")
    print(f"  Categories: {len(frames['categories'])}")
    print(f"  Products: {len(products)} ({int(products['isActive'].sum())} active)")
    print(f"  Sold out: {int((products['stock'] == 0).sum())}")
    print(f"  Orders: {len(orders)}")
    print(f"  Order statuses: {orders['status'].value_counts().to_dict()}")
    print(f"  Campaigns: {len(frames['campaigns'])}")


if __name__ == "__main__":
    main()
