"""
Utility functions and shared resources.
"""

from .configs import base_configs
from .errors import (
    ExtractionError,
    FetchError,
    NotificationError,
    RadarError,
    ReviewError,
    SourceNotFoundError,
    StoreError,
)
from .helpers import (
    RadarJSONEncoder,
    generate_response,
    normalize_source_name,
    today_local,
)
from .logger import logger
from .types import ErrorType
