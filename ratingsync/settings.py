"""
Configuration settings for RatingSync.

Centralized configuration for the store, reconciler and CLI.
"""

import os
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_ROOT = Path(os.getenv("RATINGSYNC_DATA_ROOT", str(PROJECT_ROOT / "data")))
OUTPUT_ROOT = Path(os.getenv("RATINGSYNC_OUTPUT_ROOT", str(PROJECT_ROOT / "output")))

# Document fields
GROUP_FIELD = "restaurantId"  # Review field naming the owning restaurant
VALUE_FIELD = "rating"  # Review field holding the numeric rating
COUNT_FIELD = "ratingCount"  # Restaurant field receiving the review count
AVERAGE_FIELD = "avgRating"  # Restaurant field receiving the average rating

# Replay
REPLAY_WORKERS = int(os.getenv("RATINGSYNC_REPLAY_WORKERS", "1"))

# Audit
AUDIT_TOLERANCE = 1e-9  # Largest average difference not reported as drift

# Logging
LOG_LEVEL = os.getenv("RATINGSYNC_LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = "ratingsync.log"
