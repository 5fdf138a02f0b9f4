"""Genre taxonomy and LLM-backed genre classification."""

from .taxonomy import (
    PRIMARY_GENRES,
    SUB_GENRES,
    validate_genre,
    validate_genres,
    validate_subgenre,
    is_valid_genre,
    is_valid_subgenre,
    get_all_genres,
    get_all_subgenres,
)
from .classifier import (
    ClassifierConfig,
    GenreClassifier,
    mock_classification,
    parse_response,
)

__all__ = [
    "PRIMARY_GENRES",
    "SUB_GENRES",
    "validate_genre",
    "validate_genres",
    "validate_subgenre",
    "is_valid_genre",
    "is_valid_subgenre",
    "get_all_genres",
    "get_all_subgenres",
    "ClassifierConfig",
    "GenreClassifier",
    "mock_classification",
    "parse_response",
]
