"""Constants for goalblocks.

This module centralizes magic numbers and default values used throughout the application.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Calendar date format used for schedule documents
DATE_FORMAT = "%Y-%m-%d"

# Generation window
DEFAULT_LOOKAHEAD_DAYS = 90
MAX_LOOKAHEAD_DAYS = int(os.getenv("MAX_LOOKAHEAD_DAYS", "366"))
