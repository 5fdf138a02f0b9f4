"""
Filter configuration: allow-lists for genres and authors.

A FilterConfig is immutable; each ingestion run takes one snapshot before it
starts. Sources, highest priority first:
    1. ingestion_config table, key "filter_settings" (see src.db.config_store)
    2. environment: INGEST_ALLOWED_GENRES, INGEST_ALLOWED_AUTHORS,
       ENABLE_GENRE_FILTER, ENABLE_AUTHOR_FILTER
"""

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from src.classification.taxonomy import PRIMARY_GENRES, validate_genre


PAYLOAD_KEYS = (
    "allowed_genres",
    "allowed_authors",
    "enable_genre_filter",
    "enable_author_filter",
)


class ConfigValidationError(ValueError):
    """Raised with every problem found in a filter configuration payload."""

    def __init__(self, errors: list[str]):
        super().__init__("Invalid filter configuration: " + "; ".join(errors))
        self.errors = errors


def parse_list(value: Optional[str]) -> tuple[str, ...]:
    """Split a comma-separated setting, trimming entries and dropping empty ones."""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class FilterConfig:
    allowed_genres: tuple[str, ...] = ()
    allowed_authors: tuple[str, ...] = ()
    enable_genre_filter: bool = False
    enable_author_filter: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "FilterConfig":
        if env is None:
            load_dotenv()
            env = os.environ
        return cls(
            allowed_genres=parse_list(env.get("INGEST_ALLOWED_GENRES")),
            allowed_authors=parse_list(env.get("INGEST_ALLOWED_AUTHORS")),
            enable_genre_filter=env.get("ENABLE_GENRE_FILTER") == "true",
            enable_author_filter=env.get("ENABLE_AUTHOR_FILTER") == "true",
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "FilterConfig":
        """
        Build a config from a stored or user-supplied mapping.

        Missing keys take the defaults. Genres are stored in taxonomy casing
        and authors trimmed.

        Raises:
            ConfigValidationError: If validate_filter_config reports problems.
        """
        errors = validate_filter_config(payload)
        if errors:
            raise ConfigValidationError(errors)
        return cls(
            allowed_genres=tuple(
                validate_genre(g) for g in payload.get("allowed_genres", [])
            ),
            allowed_authors=tuple(
                a.strip() for a in payload.get("allowed_authors", [])
            ),
            enable_genre_filter=payload.get("enable_genre_filter", False),
            enable_author_filter=payload.get("enable_author_filter", False),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed_genres": list(self.allowed_genres),
            "allowed_authors": list(self.allowed_authors),
            "enable_genre_filter": self.enable_genre_filter,
            "enable_author_filter": self.enable_author_filter,
        }


def validate_filter_config(payload: Any) -> list[str]:
    """
    Check a configuration payload.

    Returns:
        list[str]: Problems found, empty when the payload is valid.
    """
    if not isinstance(payload, Mapping):
        return ["Configuration must be an object"]

    errors = []
    unknown = sorted(set(payload) - set(PAYLOAD_KEYS))
    if unknown:
        errors.append(f"Unknown keys: {', '.join(unknown)}")

    genres = payload.get("allowed_genres")
    if genres is not None:
        if not isinstance(genres, (list, tuple)):
            errors.append("allowed_genres must be a list")
        else:
            invalid = [str(g) for g in genres if validate_genre(g) is None]
            if invalid:
                errors.append(
                    f"Invalid genres: {', '.join(invalid)}. "
                    f"Valid genres: {', '.join(PRIMARY_GENRES)}"
                )

    authors = payload.get("allowed_authors")
    if authors is not None:
        if not isinstance(authors, (list, tuple)):
            errors.append("allowed_authors must be a list")
        elif any(not isinstance(a, str) or not a.strip() for a in authors):
            errors.append("All author names must be non-empty strings")

    for flag in ("enable_genre_filter", "enable_author_filter"):
        if flag in payload and not isinstance(payload[flag], bool):
            errors.append(f"{flag} must be a boolean")

    return errors
