"""Runtime settings read from the environment."""

import os
from pathlib import Path

# logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# catalog CSVs loaded into the in-memory document store on startup
DATA_DIR = Path(os.getenv("DATA_DIR", "data"))

# vector cache; an empty REDIS_URL selects the in-process cache.
# Both vector kinds share one TTL.
REDIS_URL = os.getenv("REDIS_URL", "")
VECTOR_TTL_SECONDS = 60 * 60 * 24

# query defaults
DEFAULT_LIMIT = 10
DEFAULT_BOUGHT_TOGETHER_LIMIT = 5
DEFAULT_BEST_SELLER_LIMIT = 8
DEFAULT_BEST_SELLER_DAYS = 30
DEFAULT_RELATED_LIMIT = 6
DEFAULT_LISTING_LIMIT = 8
DEFAULT_NEW_ARRIVAL_DAYS = 30
MAX_LIMIT = 100
RECENT_HISTORY_SIZE = 10
