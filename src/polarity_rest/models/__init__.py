"""Data models for the Polarity REST API client."""

from .channels import ClearState, completed_response, pending_response
from .tags import (
    BulkUploadResult,
    ClassificationResult,
    EntityType,
    RowRejection,
    TagEntityPair,
    TagUploadBatch,
)

__all__ = [
    # Tagging
    "EntityType",
    "TagEntityPair",
    "TagUploadBatch",
    "RowRejection",
    "ClassificationResult",
    "BulkUploadResult",
    # Channels
    "ClearState",
    "completed_response",
    "pending_response",
]
