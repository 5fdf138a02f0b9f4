"""
PDF download, validation and filename sanitization.

Downloads go through a RateLimitedClient so they share the timeout and
retry policy of the metadata fetcher. A file is accepted only when it is
non-empty, within the size limit and starts with the %PDF magic bytes.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import requests

from .exceptions import (
    InvalidIdentifierError,
    PdfValidationError,
    RateLimitExceededError,
)
from .rate_limiter import RateLimitedClient


PDF_MAGIC = b"%PDF"
MAX_FILENAME_LENGTH = 200
DEFAULT_MAX_SIZE_BYTES = 100 * 1024 * 1024
CHUNK_SIZE = 64 * 1024

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_UNDERSCORE_RUNS = re.compile(r"_+")
_SAFE_FILENAME = re.compile(r"^[A-Za-z0-9_-]+$")


def is_valid_pdf(buffer: Optional[bytes]) -> bool:
    """True iff buffer holds at least 4 bytes starting with %PDF."""
    if not buffer or len(buffer) < len(PDF_MAGIC):
        return False
    return bytes(buffer[: len(PDF_MAGIC)]) == PDF_MAGIC


def sanitize_filename(identifier: str) -> str:
    """
    Turn a source identifier into a safe storage filename.

    Characters outside [A-Za-z0-9_-] become "_", runs of "_" collapse,
    leading and trailing "_" are stripped and the result is truncated to
    MAX_FILENAME_LENGTH. The function is idempotent.

    Args:
        identifier: Source identifier.

    Returns:
        str: Sanitized filename without extension ("unnamed" if nothing is left).

    Raises:
        InvalidIdentifierError: If identifier is not a non-empty string.
    """
    if not isinstance(identifier, str) or not identifier:
        raise InvalidIdentifierError("Invalid identifier: must be a non-empty string")

    sanitized = _UNSAFE_CHARS.sub("_", identifier)
    sanitized = _UNDERSCORE_RUNS.sub("_", sanitized).strip("_")
    if not sanitized:
        return "unnamed"

    # Truncation may expose a trailing "_"
    sanitized = sanitized[:MAX_FILENAME_LENGTH].rstrip("_")
    return sanitized or "unnamed"


def is_valid_filename(name: str) -> bool:
    if not isinstance(name, str) or not name:
        return False
    if len(name) > MAX_FILENAME_LENGTH:
        return False
    if ".." in name or "/" in name or "\\" in name:
        return False
    return bool(_SAFE_FILENAME.match(name))


@dataclass(frozen=True)
class DownloadedPdf:
    buffer: bytes
    size: int


class PdfValidator:
    """Downloads PDFs and rejects anything that is not a usable PDF file."""

    def __init__(
        self,
        client: Optional[RateLimitedClient] = None,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
    ):
        self.client = client or RateLimitedClient()
        self.max_size_bytes = max_size_bytes
        self.logger = logging.getLogger("pdf")

    def download(self, url: str) -> DownloadedPdf:
        """
        Download and validate a PDF.

        Raises:
            PdfValidationError: With a human readable reason when the file is
                unreachable, too large, empty or not a PDF.
        """
        if not isinstance(url, str) or not url:
            raise PdfValidationError("Invalid URL provided")

        self.logger.info(f"Downloading PDF from {url}")
        try:
            response = self.client.get(url, stream=True)
        except requests.Timeout as e:
            raise PdfValidationError(f"Download timeout: {e}") from e
        except requests.RequestException as e:
            raise PdfValidationError(f"Download failed: {e}") from e
        except RateLimitExceededError as e:
            raise PdfValidationError(str(e)) from e

        with response:
            content_length = response.headers.get("Content-Length")
            if content_length and content_length.isdigit():
                if int(content_length) > self.max_size_bytes:
                    raise PdfValidationError(
                        f"File too large: {content_length} bytes (max: {self.max_size_bytes})"
                    )

            buffer = bytearray()
            try:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    buffer.extend(chunk)
                    if len(buffer) > self.max_size_bytes:
                        raise PdfValidationError(
                            f"File too large: more than {self.max_size_bytes} bytes"
                        )
            except requests.RequestException as e:
                raise PdfValidationError(f"Download interrupted: {e}") from e

        if not buffer:
            raise PdfValidationError("Downloaded file is empty")
        if not is_valid_pdf(buffer):
            raise PdfValidationError("Invalid PDF: missing PDF header")

        self.logger.info(f"Validated PDF: {len(buffer):,} bytes")
        return DownloadedPdf(buffer=bytes(buffer), size=len(buffer))

    def download_and_validate(self, url: str) -> Optional[DownloadedPdf]:
        """Like download(), but returns None instead of raising."""
        try:
            return self.download(url)
        except PdfValidationError as e:
            self.logger.error(f"Rejected PDF from {url}: {e}")
            return None
