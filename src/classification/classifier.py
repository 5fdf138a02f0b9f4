"""
Genre classification of book metadata through an OpenAI-compatible model.

The classifier is non-blocking: every failure (disabled, no key, API error,
unparseable answer) returns None and the book continues through the
pipeline without genres.

Environment:
    ENABLE_GENRE_CLASSIFICATION: "false" disables classification
    MOCK_GENRE_CLASSIFIER: "true" returns keyword-based classifications offline
    GENRE_CLASSIFIER_MODEL: model name sent to the API
    GENRE_CLASSIFIER_TIMEOUT_S: per-call timeout
"""

import json
import logging
import os
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from dotenv import load_dotenv

from src.ingestion.records import BookMetadata, GenreClassification, parse_year
from src.llm import (
    _book_description_input,
    _genre_classification_prompt,
    init_llm_openai,
)
from .taxonomy import PRIMARY_GENRES, SUB_GENRES, validate_genres, validate_subgenre


DEFAULT_MODEL = "gpt-4o-mini"
MAX_DESCRIPTION_CHARS = 500

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

# Checked in order, first keyword match wins
_MOCK_RULES = (
    (("philosoph", "plato", "aristotle"), (("Philosophy", "Ethics"), "Ancient")),
    (("bible", "religion", "god", "church"), (("Religion", "Theology"), "Canonical Text")),
    (("history", "war", "empire"), (("History", "Biography"), "Medieval")),
    (("science", "math", "physics"), (("Science", "Mathematics"), None)),
    (("law", "legal", "court"), (("Law", "Politics"), "Legal Code")),
    (("poem", "poetry", "verse"), (("Literature", "Poetry"), "Classical")),
)
_MOCK_DEFAULT = (("Literature",), None)


@dataclass(frozen=True)
class ClassifierConfig:
    enabled: bool = True
    mock_mode: bool = False
    model: str = DEFAULT_MODEL
    timeout_s: float = 15.0
    max_attempts: int = 2
    retry_delay_ms: int = 1000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ClassifierConfig":
        if env is None:
            load_dotenv()
            env = os.environ
        timeout = env.get("GENRE_CLASSIFIER_TIMEOUT_S")
        try:
            timeout_s = float(timeout) if timeout else cls.timeout_s
        except ValueError:
            raise ValueError(f"GENRE_CLASSIFIER_TIMEOUT_S must be a number, got {timeout!r}")
        return cls(
            enabled=env.get("ENABLE_GENRE_CLASSIFICATION") != "false",
            mock_mode=env.get("MOCK_GENRE_CLASSIFIER") == "true",
            model=env.get("GENRE_CLASSIFIER_MODEL") or DEFAULT_MODEL,
            timeout_s=timeout_s,
        )


def parse_response(text: Any) -> Optional[GenreClassification]:
    """
    Extract a GenreClassification from a model answer.

    The first {...} block is parsed as JSON; it must hold a "genres" list.
    Labels outside the taxonomy are dropped and at most three are kept.

    Returns:
        GenreClassification, or None if nothing valid remains.
    """
    logger = logging.getLogger("classifier")
    if not isinstance(text, str) or not text.strip():
        logger.warning("Empty or invalid response")
        return None

    match = _JSON_OBJECT.search(text)
    payload = match.group(0) if match else text.strip()
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse JSON: {e}")
        return None

    if not isinstance(parsed, dict):
        logger.warning("Response is not an object")
        return None
    if not isinstance(parsed.get("genres"), list):
        logger.warning("Response missing genres array")
        return None

    genres = validate_genres(parsed["genres"])
    if not genres:
        logger.warning("No valid genres in response")
        return None
    return GenreClassification(
        genres=tuple(genres), subgenre=validate_subgenre(parsed.get("subgenre"))
    )


def mock_classification(book: BookMetadata) -> GenreClassification:
    title = (book.title or "").lower()
    for keywords, (genres, subgenre) in _MOCK_RULES:
        if any(k in title for k in keywords):
            return GenreClassification(genres=genres, subgenre=subgenre)
    genres, subgenre = _MOCK_DEFAULT
    return GenreClassification(genres=genres, subgenre=subgenre)


class GenreClassifier:
    """Assigns 1-3 taxonomy genres and an optional sub-genre to a book."""

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        client=None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or ClassifierConfig.from_env()
        self._client = client
        self._sleep = sleep
        self.logger = logging.getLogger("classifier")

    @property
    def client(self):
        if self._client is None and self.config.enabled and not self.config.mock_mode:
            self._client = init_llm_openai(timeout_s=self.config.timeout_s)
        return self._client

    def is_enabled(self) -> bool:
        if not self.config.enabled:
            return False
        return self.config.mock_mode or self.client is not None

    def _ask_model(self, book: BookMetadata) -> str:
        year = parse_year(book.date)
        description = (book.description or "No description available")[
            :MAX_DESCRIPTION_CHARS
        ]
        response = self.client.responses.create(
            model=self.config.model,
            instructions=_genre_classification_prompt(PRIMARY_GENRES, SUB_GENRES),
            input=_book_description_input(
                title=book.title or "Unknown",
                author=book.creator or "Unknown",
                year=str(year) if year else "Unknown",
                description=description,
                source="Internet Archive",
            ),
            temperature=0.3,
        )
        return response.output_text

    def classify(self, book: BookMetadata) -> Optional[GenreClassification]:
        """
        Classify one book.

        Returns:
            GenreClassification, or None on any failure.
        """
        if not book or not book.title:
            self.logger.warning("Missing book title, skipping classification")
            return None
        if not self.config.enabled:
            self.logger.debug("Classification disabled")
            return None
        if self.config.mock_mode:
            return mock_classification(book)
        if self.client is None:
            self.logger.warning("No LLM client configured, skipping classification")
            return None

        self.logger.info(f"Classifying: {book.title}")
        for attempt in range(1, self.config.max_attempts + 1):
            try:
                result = parse_response(self._ask_model(book))
                if result:
                    self.logger.info(
                        f"Classified {book.identifier} as {', '.join(result.genres)}"
                        + (f" ({result.subgenre})" if result.subgenre else "")
                    )
                    return result
            except Exception as e:
                self.logger.warning(
                    f"Attempt {attempt} failed for {book.identifier}: {e}",
                    exc_info=True,
                )

            if attempt < self.config.max_attempts:
                self._sleep(self.config.retry_delay_ms * attempt / 1000)

        self.logger.warning(f"All classification attempts failed for: {book.title}")
        return None
