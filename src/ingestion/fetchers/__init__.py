"""Archive fetchers. Each source implements the BookFetcher interface."""

from .base import BookFetcher
from .internet_archive import InternetArchiveFetcher

__all__ = ["BookFetcher", "InternetArchiveFetcher"]
