"""Catalog maintenance jobs."""

from .bulk_category import BulkCategoryMaintainer, BulkUpdateResult

__all__ = ["BulkCategoryMaintainer", "BulkUpdateResult"]
