"""
Storage module for handling local and cloud storage operations.

This module provides abstract and concrete implementations for storage
backends, supporting both local filesystem and S3-compatible cloud storage,
plus the StorageUploader used by the ingestion pipeline.
"""

from .base import BaseStorage
from .cloud import CloudStorage
from .local import LocalStorage
from .uploader import StorageUploader

__all__ = [
    "BaseStorage",
    "CloudStorage",
    "LocalStorage",
    "StorageUploader",
]
