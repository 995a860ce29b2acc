"""
Polarity REST API client.

Async client for the Polarity JSON:API service: bulk tagging of entities in
channels, clearing channels, and managing integrations and users.
"""

__version__ = "0.3.0"

from .api.client import PolarityClient
from .config import ConnectionConfig, PolarityConfig, RequestOptions, load_config
from .models.tags import BulkUploadResult, TagEntityPair
from .utils.exceptions import PolarityError
from .utils.helpers import get_integration_id

__all__ = [
    "BulkUploadResult",
    "ConnectionConfig",
    "PolarityClient",
    "PolarityConfig",
    "PolarityError",
    "RequestOptions",
    "TagEntityPair",
    "__version__",
    "get_integration_id",
    "load_config",
]
