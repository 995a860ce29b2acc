"""Utility functions and exceptions."""

from .exceptions import (
    AuthenticationError,
    ClearChannelError,
    PartialUploadError,
    PolarityAPIError,
    PolarityError,
    PreconditionError,
    ResourceNotFoundError,
    TagUploadError,
    TagValidationError,
    TransportError,
)
from .helpers import get_integration_id

__all__ = [
    "PolarityError",
    "PreconditionError",
    "TagValidationError",
    "TransportError",
    "PolarityAPIError",
    "AuthenticationError",
    "ResourceNotFoundError",
    "TagUploadError",
    "PartialUploadError",
    "ClearChannelError",
    "get_integration_id",
]
