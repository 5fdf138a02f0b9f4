import pytest
import requests

from src.db import (
    CatalogWriter,
    FilterDecisionLog,
    InsertResult,
    configure_database,
    get_db_session,
    get_ingestion_state,
    init_database,
    set_paused,
)
from src.db.catalog import DUPLICATE_ERROR
from src.filters import FilterConfig, InMemoryAuditSink
from src.ingestion import (
    BookMetadata,
    FetcherConfig,
    GenreClassification,
    IngestionSettings,
    JobStatus,
)
from src.ingestion.fetchers import InternetArchiveFetcher
from src.ingestion.rate_limiter import RateLimitedClient
from src.pipeline import (
    IngestionOptions,
    IngestionOrchestrator,
    build_catalog_record,
    clean_description,
    run_ingestion_job,
)
from src.pipeline import orchestrator as orchestrator_module

from tests.fakes import (
    FakeCatalog,
    FakeClassifier,
    FakeClock,
    FakeFetcher,
    FakePdfValidator,
    FakeResponse,
    FakeUploader,
    ScriptedSession,
    book,
)


FICTION_ONLY = FilterConfig(allowed_genres=("Fiction",), enable_genre_filter=True)
NO_DELAY = dict(delay_between_books_ms=0)


def make_orchestrator(
    books,
    catalog=None,
    genres=None,
    filter_config=FilterConfig(),
    pdf_validator=None,
    uploader=None,
    sleeps=None,
    **kwargs,
):
    sleeps = sleeps if sleeps is not None else []
    return IngestionOrchestrator(
        fetcher=kwargs.pop("fetcher", None) or FakeFetcher(books),
        catalog=catalog if catalog is not None else FakeCatalog(),
        classifier=kwargs.pop("classifier", None) or FakeClassifier(genres or {}),
        filter_config=filter_config,
        pdf_validator=pdf_validator or FakePdfValidator(),
        uploader=uploader or FakeUploader(),
        sleep=sleeps.append,
        **kwargs,
    )


def assert_closed(result):
    assert result.added + result.skipped + result.filtered + result.failed == result.processed
    assert result.filtered == result.filtered_by_genre + result.filtered_by_author


# Helpers


def test_clean_description_strips_markup():
    assert clean_description("<p>Stoic   <b>notes</b></p>\n<br/>") == "Stoic notes"
    assert clean_description("<p> </p>") is None
    assert clean_description(None) is None


def test_build_catalog_record_maps_metadata():
    metadata = BookMetadata(
        identifier="meditations00marc",
        title="Meditations",
        creator="Marcus Aurelius",
        date="c. 1862",
        language="eng",
        description="<i>Stoic</i> notes",
    )

    record = build_catalog_record(metadata, "https://books.example.com/m.pdf", None)

    assert record.published_year == 1862
    assert record.description == "Stoic notes"
    assert record.genres is None
    assert record.source_identifier == "meditations00marc"


@pytest.mark.parametrize(
    "options",
    [
        dict(batch_size=0),
        dict(page=0),
        dict(delay_between_books_ms=-1),
        dict(job_type="hourly"),
    ],
)
def test_invalid_options_are_rejected(options):
    with pytest.raises(ValueError):
        IngestionOptions(**options)


# Runs


def test_three_book_example():
    catalog = FakeCatalog(existing=["a"])
    orchestrator = make_orchestrator(
        [book("a"), book("b"), book("c")],
        catalog=catalog,
        genres={"b": ("Fiction",), "c": ("Science",)},
        filter_config=FICTION_ONLY,
    )

    result = orchestrator.run(IngestionOptions(**NO_DELAY))

    assert result.processed == 3
    assert result.evaluated == 2
    assert result.added == 1
    assert result.skipped == 1
    assert result.filtered == 1
    assert result.filtered_by_genre == 1
    assert result.failed == 0
    assert result.status == JobStatus.COMPLETED
    assert catalog.records["b"].genres == ("Fiction",)
    assert_closed(result)


def test_filtered_books_are_never_downloaded():
    validator = FakePdfValidator()
    uploader = FakeUploader()
    orchestrator = make_orchestrator(
        [book("b"), book("c")],
        genres={"b": ("Fiction",), "c": ("Science",)},
        filter_config=FICTION_ONLY,
        pdf_validator=validator,
        uploader=uploader,
    )

    orchestrator.run(IngestionOptions(**NO_DELAY))

    assert validator.downloads == ["https://archive.org/download/b/b.pdf"]
    assert uploader.uploads == ["b"]


def test_unclassified_book_fails_active_genre_filter_and_passes_otherwise():
    active = make_orchestrator([book("x")], filter_config=FICTION_ONLY).run(
        IngestionOptions(**NO_DELAY)
    )
    inactive = make_orchestrator([book("x")]).run(IngestionOptions(**NO_DELAY))

    assert active.filtered_by_genre == 1
    assert inactive.added == 1


def test_author_filter_counts_separately():
    config = FilterConfig(allowed_authors=("Plato",), enable_author_filter=True)
    orchestrator = make_orchestrator(
        [book("a", creator="Plato"), book("b", creator="Homer")], filter_config=config
    )

    result = orchestrator.run(IngestionOptions(**NO_DELAY))

    assert result.added == 1
    assert result.filtered_by_author == 1
    assert result.filtered_by_genre == 0
    assert_closed(result)


def test_dry_run_has_no_side_effects_and_matches_real_counts():
    books = [book("a"), book("b"), book("c"), book("d")]
    genres = {"a": ("Fiction",), "b": ("Science",), "c": ("Fiction",)}
    dry_catalog = FakeCatalog(existing=["d"])
    validator = FakePdfValidator()
    uploader = FakeUploader()
    sleeps = []
    audit = InMemoryAuditSink()

    dry = make_orchestrator(
        books,
        catalog=dry_catalog,
        genres=genres,
        filter_config=FICTION_ONLY,
        pdf_validator=validator,
        uploader=uploader,
        sleeps=sleeps,
        audit_sink=audit,
    ).run(IngestionOptions(dry_run=True))
    real = make_orchestrator(
        books,
        catalog=FakeCatalog(existing=["d"]),
        genres=genres,
        filter_config=FICTION_ONLY,
    ).run(IngestionOptions(**NO_DELAY))

    assert dry.dry_run
    assert validator.downloads == []
    assert uploader.uploads == []
    assert sleeps == []
    assert dry_catalog.records == {"d": None}
    assert dry_catalog.job_logs == {}
    assert [d.identifier for d in audit.decisions] == ["a", "b", "c"]
    counts = lambda r: (r.processed, r.added, r.skipped, r.filtered, r.failed, r.status)
    assert counts(dry) == counts(real)


def test_delay_between_books_skips_last_book():
    sleeps = []
    orchestrator = make_orchestrator([book("a"), book("b"), book("c")], sleeps=sleeps)

    orchestrator.run(IngestionOptions(delay_between_books_ms=250))

    assert sleeps == [0.25, 0.25]


def test_storage_failure_marks_book_failed_and_run_partial():
    orchestrator = make_orchestrator(
        [book("a"), book("b")],
        pdf_validator=FakePdfValidator({"b": "Invalid PDF: missing PDF header"}),
    )

    result = orchestrator.run(IngestionOptions(**NO_DELAY))

    assert result.added == 1
    assert result.failed == 1
    assert result.status == JobStatus.PARTIAL
    assert result.errors[0].identifier == "b"
    assert result.errors[0].error == "Invalid PDF: missing PDF header"
    assert_closed(result)


def test_upload_failure_is_recorded():
    orchestrator = make_orchestrator([book("a")], uploader=FakeUploader(fail_for=["a"]))

    result = orchestrator.run(IngestionOptions(**NO_DELAY))

    assert result.failed == 1
    assert result.status == JobStatus.FAILED
    assert "bucket unavailable" in result.errors[0].error


def test_unexpected_error_in_one_book_does_not_stop_the_run():
    class ExplodingCatalog(FakeCatalog):
        def insert(self, record):
            if record.source_identifier == "a":
                raise ValueError("disk full")
            return super().insert(record)

    orchestrator = make_orchestrator([book("a"), book("b")], catalog=ExplodingCatalog())

    result = orchestrator.run(IngestionOptions(**NO_DELAY))

    assert result.failed == 1
    assert result.added == 1
    assert result.errors[0].error == "disk full"
    assert_closed(result)


def test_duplicate_at_insert_time_counts_as_skipped():
    catalog = FakeCatalog()
    catalog.insert_errors["a"] = InsertResult(success=False, error=DUPLICATE_ERROR, duplicate=True)

    result = make_orchestrator([book("a")], catalog=catalog).run(IngestionOptions(**NO_DELAY))

    assert result.skipped == 1
    assert result.failed == 0
    assert result.status == JobStatus.COMPLETED


def test_repeated_identifier_within_a_batch_is_skipped():
    result = make_orchestrator([book("a"), book("a")]).run(IngestionOptions(**NO_DELAY))

    assert result.added == 1
    assert result.skipped == 1
    assert_closed(result)


@pytest.mark.parametrize(
    "error",
    [requests.ConnectionError("archive.org unreachable"), requests.HTTPError("503 Error")],
)
def test_fetch_failure_fails_the_job(error):
    catalog = FakeCatalog()
    orchestrator = make_orchestrator([], catalog=catalog, fetcher=FakeFetcher(error=error))

    result = orchestrator.run(IngestionOptions(**NO_DELAY))

    assert result.status == JobStatus.FAILED
    assert result.processed == 0
    assert result.errors[0].identifier == "job"
    logged = next(iter(catalog.job_logs.values()))
    assert logged.status == JobStatus.FAILED
    assert logged.completed_at is not None


@pytest.mark.parametrize(
    "payload",
    [{"response": None}, None, ["not", "a", "dict"], {"response": {"docs": ["garbage"]}}],
)
def test_malformed_search_page_does_not_crash_the_job(payload):
    clock = FakeClock()
    client = RateLimitedClient(
        FetcherConfig(min_interval_ms=0),
        session=ScriptedSession(FakeResponse(json_data=payload)),
        sleep=clock.sleep,
        clock=clock,
    )
    orchestrator = make_orchestrator([], fetcher=InternetArchiveFetcher(client))

    result = orchestrator.run(IngestionOptions(**NO_DELAY))

    assert result.status == JobStatus.COMPLETED
    assert result.processed == 0


def test_mixed_page_keeps_the_valid_documents():
    clock = FakeClock()
    page = {"response": {"docs": [{"identifier": "a"}, "garbage", 42]}}
    client = RateLimitedClient(
        FetcherConfig(min_interval_ms=0),
        session=ScriptedSession(FakeResponse(json_data=page)),
        sleep=clock.sleep,
        clock=clock,
    )
    catalog = FakeCatalog()
    orchestrator = make_orchestrator(
        [], catalog=catalog, fetcher=InternetArchiveFetcher(client)
    )

    result = orchestrator.run(IngestionOptions(**NO_DELAY))

    assert result.processed == 1
    assert result.added == 1
    assert "a" in catalog.records
    assert_closed(result)


def test_unexpected_fetch_error_fails_the_job_and_closes_the_log():
    catalog = FakeCatalog()
    fetcher = FakeFetcher(error=AttributeError("'NoneType' object has no attribute 'get'"))
    orchestrator = make_orchestrator([], catalog=catalog, fetcher=fetcher)

    result = orchestrator.run(IngestionOptions(**NO_DELAY))

    assert result.status == JobStatus.FAILED
    assert result.processed == 0
    assert [e.identifier for e in result.errors] == ["job"]
    logged = next(iter(catalog.job_logs.values()))
    assert logged.status == JobStatus.FAILED


def test_empty_page_completes():
    result = make_orchestrator([]).run(IngestionOptions(**NO_DELAY))

    assert result.status == JobStatus.COMPLETED
    assert result.processed == 0


def test_filtered_book_is_classified_once_per_instance():
    classifier = FakeClassifier({"c": ("Science",)})
    orchestrator = make_orchestrator(
        [book("c")], classifier=classifier, filter_config=FICTION_ONLY
    )

    orchestrator.run(IngestionOptions(**NO_DELAY))
    orchestrator.run(IngestionOptions(**NO_DELAY))

    assert classifier.calls == ["c"]


def test_stored_genres_are_reused_instead_of_reclassifying():
    catalog = FakeCatalog()
    catalog.classifications["h"] = GenreClassification(("History",))
    classifier = FakeClassifier({"h": ("Fiction",)})
    history_only = FilterConfig(allowed_genres=("History",), enable_genre_filter=True)

    result = make_orchestrator(
        [book("h")], catalog=catalog, classifier=classifier, filter_config=history_only
    ).run(IngestionOptions(**NO_DELAY))

    assert classifier.calls == []
    assert result.added == 1
    assert catalog.records["h"].genres == ("History",)


def test_two_runs_are_idempotent_against_the_catalog(database):
    books = [book("a"), book("b"), book("c")]
    classifier = FakeClassifier({"a": ("Philosophy",), "b": ("History",)})
    uploader = FakeUploader()

    first = make_orchestrator(
        books, catalog=CatalogWriter(), classifier=classifier, uploader=uploader
    ).run(IngestionOptions(**NO_DELAY))
    second = make_orchestrator(
        books, catalog=CatalogWriter(), classifier=classifier, uploader=uploader
    ).run(IngestionOptions(**NO_DELAY))

    assert first.added == 3
    assert second.added == 0
    assert second.skipped == second.processed == 3
    assert classifier.calls == ["a", "b", "c"]
    assert uploader.uploads == ["a", "b", "c"]
    logs = CatalogWriter().get_recent_job_logs()
    assert {log["status"] for log in logs} == {"completed"}


def test_filter_decisions_are_stored_with_the_job(database):
    catalog = CatalogWriter()
    make_orchestrator(
        [book("b"), book("c")],
        catalog=catalog,
        genres={"b": ("Fiction",), "c": ("Science",)},
        filter_config=FICTION_ONLY,
    ).run(IngestionOptions(**NO_DELAY))

    job_id = catalog.get_recent_job_logs()[0]["id"]
    with get_db_session() as session:
        rows = session.query(FilterDecisionLog).order_by(FilterDecisionLog.id).all()
        assert [row.book_identifier for row in rows] == ["b", "c"]
        assert {row.job_id for row in rows} == {job_id}


# Job wiring


@pytest.fixture
def settings(tmp_path):
    return IngestionSettings(
        database_url=f"sqlite:///{tmp_path / 'catalog.db'}",
        local_storage_dir=str(tmp_path / "storage"),
        delay_between_books_ms=0,
        fetcher=FetcherConfig(min_interval_ms=0),
    )


@pytest.fixture
def fake_fetchers(monkeypatch):
    created = []

    def factory(client=None, config=None):
        fetcher = FakeFetcher([])
        created.append(fetcher)
        return fetcher

    monkeypatch.setattr(orchestrator_module, "InternetArchiveFetcher", factory)
    return created


def test_paused_source_does_not_run(settings, fake_fetchers):
    configure_database(settings.database_url)
    init_database()
    set_paused(settings.source_name, True, paused_by="ops")

    assert run_ingestion_job(settings) is None
    assert fake_fetchers == []


def test_resume_continues_from_stored_page(settings, fake_fetchers):
    run_ingestion_job(settings, page=4, filter_config=FilterConfig())
    run_ingestion_job(settings, resume=True, filter_config=FilterConfig())

    assert [f.calls[0][0] for f in fake_fetchers] == [4, 5]
    assert get_ingestion_state(settings.source_name)["last_page"] == 6


def test_failed_fetch_keeps_the_page(settings, monkeypatch):
    monkeypatch.setattr(
        orchestrator_module,
        "InternetArchiveFetcher",
        lambda client=None, config=None: FakeFetcher(error=requests.ConnectionError("down")),
    )

    result = run_ingestion_job(settings, page=7, filter_config=FilterConfig())

    assert result.status == JobStatus.FAILED
    state = get_ingestion_state(settings.source_name)
    assert state["last_page"] == 7
    assert state["last_run_status"] == "failed"


def test_dry_run_job_writes_no_state(settings, fake_fetchers):
    result = run_ingestion_job(settings, dry_run=True, filter_config=FilterConfig())

    assert result.dry_run
    assert get_ingestion_state(settings.source_name, create=False)["last_run_status"] == "idle"
