from typing import Sequence


def _genre_classification_prompt(
    primary_genres: Sequence[str], sub_genres: Sequence[str]
) -> str:
    """
    Returns the instruction prompt for genre classification.
    Args:
        primary_genres: Allowed primary genres
        sub_genres: Allowed sub-genres
    Returns:
        Prompt string
    """
    return (
        "You are a librarian classifying public-domain books. "
        "Analyze the book described by the user and assign genres.\n\n"
        "ALLOWED PRIMARY GENRES (choose 1-3):\n"
        f"{', '.join(primary_genres)}\n\n"
        "ALLOWED SUB-GENRES (choose 0-1):\n"
        f"{', '.join(sub_genres)}\n\n"
        "RULES:\n"
        "1. Choose 1-3 primary genres that best describe the book\n"
        "2. Optionally choose 1 sub-genre if applicable\n"
        "3. Use ONLY genres from the lists above, never invent new ones\n"
        "4. Respond with ONLY valid JSON, no explanations or extra text\n\n"
        'Format: {"genres": ["Genre1", "Genre2"], "subgenre": "SubGenre"}. '
        'If no sub-genre applies use {"genres": ["Genre1"], "subgenre": null}.'
    )


def _book_description_input(
    title: str, author: str, year: str, description: str, source: str
) -> str:
    """Formats the book metadata sent as model input."""
    return (
        "BOOK INFORMATION:\n"
        f"Title: {title}\n"
        f"Author: {author}\n"
        f"Year: {year}\n"
        f"Description: {description}\n"
        f"Source: {source}"
    )
