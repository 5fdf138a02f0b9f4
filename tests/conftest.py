import pytest

from src.db import configure_database, init_database


@pytest.fixture
def database(tmp_path):
    """Fresh SQLite catalog for one test."""
    url = f"sqlite:///{tmp_path / 'catalog.db'}"
    configure_database(url)
    init_database()
    return url


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep shell settings out of the tests."""
    for key in (
        "ENABLE_GENRE_FILTER",
        "ENABLE_AUTHOR_FILTER",
        "INGEST_ALLOWED_GENRES",
        "INGEST_ALLOWED_AUTHORS",
        "ENABLE_GENRE_CLASSIFICATION",
        "MOCK_GENRE_CLASSIFIER",
        "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(key, raising=False)
