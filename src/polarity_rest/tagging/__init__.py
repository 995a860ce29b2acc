"""Bulk tagging: validation, batching and upload."""

from .builder import TagBatchBuilder
from .uploader import BulkTagUploader

__all__ = ["TagBatchBuilder", "BulkTagUploader"]
