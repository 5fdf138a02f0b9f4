from types import SimpleNamespace

import pytest

from src.classification import (
    ClassifierConfig,
    GenreClassifier,
    get_all_genres,
    is_valid_genre,
    mock_classification,
    parse_response,
    validate_genre,
    validate_genres,
    validate_subgenre,
)
from src.classification.taxonomy import MAX_GENRES, invalid_genres

from tests.fakes import book


class FakeResponses:
    def __init__(self, *answers):
        self.answers = list(answers)
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return SimpleNamespace(output_text=answer)


class FakeOpenAI:
    def __init__(self, *answers):
        self.responses = FakeResponses(*answers)


def make_classifier(*answers, **config):
    sleeps = []
    client = FakeOpenAI(*answers)
    classifier = GenreClassifier(
        ClassifierConfig(**config), client=client, sleep=sleeps.append
    )
    return classifier, client, sleeps


# Taxonomy


def test_validate_genre_is_case_insensitive_and_canonical():
    assert validate_genre("philosophy") == "Philosophy"
    assert validate_genre("  ART & ARCHITECTURE ") == "Art & Architecture"
    assert validate_genre("Cooking") is None
    assert validate_genre(42) is None


def test_validate_genres_drops_invalid_dedupes_and_caps():
    genres = validate_genres(["History", "history", "Cooking", "Law", "Poetry", "Drama"])

    assert genres == ["History", "Law", "Poetry"]
    assert len(genres) == MAX_GENRES


def test_validate_genres_rejects_non_lists():
    assert validate_genres("History") == []
    assert validate_genres(None) == []


def test_subgenres_and_helpers():
    assert validate_subgenre("medieval") == "Medieval"
    assert validate_subgenre("Gothic") is None
    assert is_valid_genre("Ethics")
    assert invalid_genres(["Ethics", "Cooking"]) == ["Cooking"]
    assert "Philosophy" in get_all_genres()


# Response parsing


def test_parse_response_extracts_embedded_json():
    text = 'Sure! {"genres": ["philosophy", "Ethics"], "subgenre": "ancient"} Hope it helps.'

    result = parse_response(text)

    assert result.genres == ("Philosophy", "Ethics")
    assert result.subgenre == "Ancient"


def test_parse_response_drops_unknown_subgenre():
    result = parse_response('{"genres": ["History"], "subgenre": "Space Opera"}')

    assert result.genres == ("History",)
    assert result.subgenre is None


@pytest.mark.parametrize(
    "text",
    [
        "",
        "no json here",
        '{"genres": "History"}',
        '{"subgenre": "Ancient"}',
        '{"genres": ["Cooking", "Gardening"]}',
        "[1, 2, 3]",
        None,
    ],
)
def test_parse_response_rejects_unusable_answers(text):
    assert parse_response(text) is None


# Classifier


def test_classify_sends_taxonomy_prompt_and_book_input():
    classifier, client, _ = make_classifier('{"genres": ["Philosophy"], "subgenre": null}')

    result = classifier.classify(
        book("meditations", title="Meditations", creator="Marcus Aurelius", date="c. 1862")
    )

    assert result.genres == ("Philosophy",)
    request = client.responses.requests[0]
    assert "Sacred Texts" in request["instructions"]
    assert "Title: Meditations" in request["input"]
    assert "Year: 1862" in request["input"]


def test_classify_retries_once_then_succeeds():
    classifier, client, sleeps = make_classifier(
        RuntimeError("gateway timeout"), '{"genres": ["Law"]}'
    )

    result = classifier.classify(book("code-civil", title="Code civil"))

    assert result.genres == ("Law",)
    assert sleeps == [1.0]
    assert len(client.responses.requests) == 2


def test_classify_returns_none_after_all_attempts_fail():
    classifier, _, _ = make_classifier("garbage", "still garbage")

    assert classifier.classify(book("x", title="Unknown")) is None


def test_classify_disabled_returns_none_without_calling_model():
    classifier, client, _ = make_classifier(enabled=False)

    assert classifier.classify(book("x")) is None
    assert not classifier.is_enabled()
    assert client.responses.requests == []


def test_classify_without_title_returns_none():
    classifier, client, _ = make_classifier()

    assert classifier.classify(book("x", title="")) is None
    assert client.responses.requests == []


def test_mock_mode_classifies_offline():
    classifier = GenreClassifier(ClassifierConfig(mock_mode=True))

    result = classifier.classify(book("x", title="The Complete Works of Plato"))

    assert classifier.is_enabled()
    assert result.genres == ("Philosophy", "Ethics")


def test_mock_classification_default_is_literature():
    assert mock_classification(book("x", title="Untitled")).genres == ("Literature",)


def test_classifier_config_from_env():
    config = ClassifierConfig.from_env(
        {
            "ENABLE_GENRE_CLASSIFICATION": "false",
            "MOCK_GENRE_CLASSIFIER": "true",
            "GENRE_CLASSIFIER_MODEL": "mistral-small",
        }
    )

    assert config.enabled is False
    assert config.mock_mode is True
    assert config.model == "mistral-small"
