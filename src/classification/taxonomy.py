"""
Controlled vocabulary for book genres.

Lookups are case-insensitive and always return the canonical casing listed
below. Extend the taxonomy by appending to the tuples.
"""

from typing import Any, Iterable, Optional


MAX_GENRES = 3

PRIMARY_GENRES = (
    "Philosophy",
    "Religion",
    "Theology",
    "Sacred Texts",
    "History",
    "Biography",
    "Science",
    "Mathematics",
    "Medicine",
    "Law",
    "Politics",
    "Economics",
    "Literature",
    "Poetry",
    "Drama",
    "Mythology",
    "Military & Strategy",
    "Education",
    "Linguistics",
    "Ethics",
    "Anthropology",
    "Sociology",
    "Psychology",
    "Geography",
    "Astronomy",
    "Alchemy & Esoterica",
    "Art & Architecture",
)

SUB_GENRES = (
    "Ancient",
    "Medieval",
    "Classical",
    "Early Modern",
    "Commentary",
    "Translation",
    "Manuscript",
    "Legal Code",
    "Canonical Text",
)

_PRIMARY_LOOKUP = {g.lower(): g for g in PRIMARY_GENRES}
_SUB_LOOKUP = {g.lower(): g for g in SUB_GENRES}


def validate_genre(genre: Any) -> Optional[str]:
    """Return the canonical genre name, or None if it is not in the taxonomy."""
    if not isinstance(genre, str) or not genre:
        return None
    return _PRIMARY_LOOKUP.get(genre.strip().lower())


def validate_genres(genres: Any) -> list[str]:
    """
    Keep the valid genres of a list, in input order.

    Invalid entries are dropped, duplicates (case-insensitive) removed and
    the result capped at MAX_GENRES. Anything that is not a list or tuple
    yields an empty list.
    """
    if not isinstance(genres, (list, tuple)):
        return []

    valid: list[str] = []
    for genre in genres:
        canonical = validate_genre(genre)
        if canonical and canonical not in valid:
            valid.append(canonical)
            if len(valid) >= MAX_GENRES:
                break
    return valid


def validate_subgenre(subgenre: Any) -> Optional[str]:
    if not isinstance(subgenre, str) or not subgenre:
        return None
    return _SUB_LOOKUP.get(subgenre.strip().lower())


def is_valid_genre(genre: Any) -> bool:
    return validate_genre(genre) is not None


def is_valid_subgenre(subgenre: Any) -> bool:
    return validate_subgenre(subgenre) is not None


def get_all_genres() -> list[str]:
    return list(PRIMARY_GENRES)


def get_all_subgenres() -> list[str]:
    return list(SUB_GENRES)


def invalid_genres(genres: Iterable[Any]) -> list[Any]:
    """Entries of genres that are not in the taxonomy."""
    return [g for g in genres if not is_valid_genre(g)]
