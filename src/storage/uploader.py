"""
PDF uploads into the object store under <source-name>/<sanitized>.pdf.

Objects are never overwritten: if the key already exists its URL is returned
and nothing is written.
"""

import logging

from src.ingestion.exceptions import StorageUploadError
from src.ingestion.pdf_validator import is_valid_filename
from .base import BaseStorage


class StorageUploader:
    def __init__(self, storage: BaseStorage, source_name: str = "internet_archive"):
        self.storage = storage
        self.source_name = source_name
        self.logger = logging.getLogger("storage")

    def storage_path(self, sanitized_filename: str) -> str:
        return f"{self.source_name}/{sanitized_filename}.pdf"

    def upload(self, buffer: bytes, sanitized_filename: str) -> str:
        """
        Store a PDF and return its URL.

        Args:
            buffer: PDF bytes, non-empty.
            sanitized_filename: Output of sanitize_filename, without extension.

        Raises:
            StorageUploadError: On invalid input or backend failure.
        """
        if not buffer:
            raise StorageUploadError("Invalid PDF buffer: must be non-empty")
        if not is_valid_filename(sanitized_filename):
            raise StorageUploadError(f"Invalid filename: {sanitized_filename!r}")

        workspace = f"{self.source_name}/"
        filename = f"{sanitized_filename}.pdf"
        self.logger.info(f"Uploading PDF to {self.storage_path(sanitized_filename)}")

        try:
            if self.storage.file_exist(workspace, filename):
                self.logger.info(f"File already exists: {workspace}{filename}")
                return self.storage.get_url(workspace, filename)
            url = self.storage.save_file(
                workspace, filename, buffer, content_type="application/pdf"
            )
        except RuntimeError as e:
            raise StorageUploadError(f"Storage upload failed: {e}") from e

        self.logger.info(f"Upload successful: {url}")
        return url
