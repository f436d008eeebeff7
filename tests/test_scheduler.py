"""Tests for the generation queue.

This module verifies:
- Enqueue idempotency per (content, hash) and forced template handling
- The save hook's eligibility and change detection
- Bulk enqueue of missing and all content
- Drain runs: lock exclusion, success path, retries and terminal failures
- Classifier timeouts, stale job reaping and stats
"""

import json

import pytest

from schemaai.app import build_services
from schemaai.classification import Classification
from schemaai.errors import ProviderHTTPError
from schemaai.queue.scheduler import LOCK_KEY, VALIDATION_FAILED_MESSAGE, clamp_run_size
from schemaai.storage.models import JobStatus

from tests.conftest import SITE_URL, T0, FakeClassifier


@pytest.fixture
def scheduler(services, record):
    services.content_store.put(record)
    return services.scheduler


def _jobs(services):
    jobs = (services.job_store.get(job_id) for job_id in range(1, 50))
    return [job for job in jobs if job is not None]


class TestClampRunSize:
    @pytest.mark.parametrize("value,expected", [(None, 2), (0, 1), (-3, 1), (3, 3), (50, 5)])
    def test_clamp(self, value, expected):
        assert clamp_run_size(value) == expected


class TestEnqueue:
    def test_enqueue_creates_pending_job(self, services, scheduler, clock):
        assert scheduler.enqueue(1)

        jobs = _jobs(services)
        assert len(jobs) == 1
        assert jobs[0].status == JobStatus.PENDING
        assert jobs[0].attempts == 0
        assert jobs[0].max_attempts == 3
        assert jobs[0].created_at == clock.now()

    def test_enqueue_is_idempotent_per_hash(self, services, scheduler):
        assert scheduler.enqueue(1)
        assert scheduler.enqueue(1)

        assert len(_jobs(services)) == 1

    def test_changed_content_gets_new_job(self, services, scheduler, make_record):
        scheduler.enqueue(1)
        services.content_store.put(make_record(title="Acme Lounge Review, updated"))
        scheduler.enqueue(1)

        jobs = _jobs(services)
        assert len(jobs) == 2
        assert jobs[0].content_hash != jobs[1].content_hash

    def test_missing_content(self, scheduler):
        assert not scheduler.enqueue(999)

    def test_unsupported_kind(self, services, scheduler, make_record):
        services.content_store.put(make_record(content_id=5, kind="attachment"))
        assert not scheduler.enqueue(5)

    def test_unknown_forced_type(self, scheduler):
        with pytest.raises(ValueError, match="Unsupported template type"):
            scheduler.enqueue(1, "Recipe")

    def test_forced_type_is_stored(self, services, scheduler):
        scheduler.enqueue(1)
        assert scheduler.enqueue(1, "FAQPage")

        assert services.schema_store.get(1).template_id == "FAQPage"
        assert len(_jobs(services)) == 1


class TestSaveHook:
    async def test_published_save_enqueues(self, services, record):
        services.content_store.put(record)

        assert await services.scheduler.maybe_enqueue_on_save(record)
        assert services.scheduler.stats().counts["pending"] == 1

    @pytest.mark.parametrize(
        "overrides",
        [{"is_revision": True}, {"kind": "attachment"}, {"status": "draft"}],
    )
    async def test_ineligible_records_skipped(self, services, make_record, overrides):
        record = make_record(**overrides)
        services.content_store.put(record)

        assert not await services.scheduler.maybe_enqueue_on_save(record)

    async def test_unchanged_content_skipped(self, services, record):
        services.content_store.put(record)
        await services.scheduler.maybe_enqueue_on_save(record)
        await services.scheduler.run_queue()

        assert not await services.scheduler.maybe_enqueue_on_save(record)

    async def test_auto_on_save_disabled(self, settings, record, clock):
        settings.queue.auto_on_save = False
        services = build_services(settings, classifier=FakeClassifier(), clock=clock)
        services.content_store.put(record)

        assert not await services.scheduler.maybe_enqueue_on_save(record)

    async def test_no_api_key(self, settings, record, clock):
        settings.classifier.api_key = ""
        services = build_services(settings, classifier=FakeClassifier(), clock=clock)
        services.content_store.put(record)

        assert not await services.scheduler.maybe_enqueue_on_save(record)

    async def test_run_on_save_drains_one(self, settings, record, clock, lounge_classification):
        settings.queue.run_on_save = True
        services = build_services(settings, classifier=FakeClassifier(lounge_classification), clock=clock)
        services.content_store.put(record)

        assert await services.scheduler.maybe_enqueue_on_save(record)
        assert services.schema_store.has_live(record.content_id)

    async def test_stored_template_is_forced(self, services, classifier, record):
        services.content_store.put(record)
        services.schema_store.update(record.content_id, template_id="Review")

        await services.scheduler.maybe_enqueue_on_save(record)
        await services.scheduler.run_queue()

        assert classifier.requests[0].forced_type == "Review"


class TestBulkEnqueue:
    def test_enqueue_missing_skips_live(self, services, make_record):
        for content_id in (1, 2, 3):
            services.content_store.put(make_record(content_id=content_id))
        services.content_store.put(make_record(content_id=4, status="draft"))
        services.schema_store.update(2, live_json='{"@graph": []}')

        assert services.scheduler.enqueue_missing() == 2
        assert {job.content_id for job in _jobs(services)} == {1, 3}

    def test_enqueue_all(self, services, make_record):
        for content_id in (1, 2, 3):
            services.content_store.put(make_record(content_id=content_id))
        services.schema_store.update(2, live_json='{"@graph": []}')

        assert services.scheduler.enqueue_all() == 3

    def test_limit(self, services, make_record):
        for content_id in (1, 2, 3):
            services.content_store.put(make_record(content_id=content_id))

        assert services.scheduler.enqueue_all(limit=2) == 2


class TestRunQueue:
    async def test_successful_job(self, services, scheduler, classifier, record):
        scheduler.enqueue(1)
        result = await scheduler.run_queue()

        assert (result.locked, result.processed, result.completed, result.failed) == (False, 1, 1, 0)
        job = _jobs(services)[0]
        assert job.status == JobStatus.COMPLETE
        assert job.completed_at == T0
        assert job.last_error == ""

        state = services.schema_store.get(1)
        assert state.has_live
        assert state.schema_type == "Review"
        assert state.summary == "A calm lounge with good food."
        assert state.missing_info == ["opening hours"]
        assert state.last_content_hash == job.content_hash
        assert classifier.calls == 1

        document = json.loads(state.live_json)
        ids = [node["@id"] for node in document["@graph"]]
        assert f"{SITE_URL}/#airportlounge-acme-lounge-exi" in ids

    async def test_locked_run_does_nothing(self, services, scheduler, classifier, clock):
        scheduler.enqueue(1)
        token = services.run_lock.acquire(LOCK_KEY, 90, clock.now())

        result = await scheduler.run_queue()

        assert result.locked
        assert classifier.calls == 0
        services.run_lock.release(LOCK_KEY, token)
        assert not (await scheduler.run_queue()).locked

    async def test_expired_lock_is_taken_over(self, services, scheduler, clock):
        scheduler.enqueue(1)
        services.run_lock.acquire(LOCK_KEY, 90, clock.now())
        clock.advance(91)

        result = await scheduler.run_queue()

        assert not result.locked
        assert result.completed == 1

    async def test_lock_released_after_run(self, services, scheduler, clock):
        await scheduler.run_queue()
        assert services.run_lock.acquire(LOCK_KEY, 90, clock.now()) is not None

    async def test_batch_size_and_fifo(self, services, make_record, classifier):
        for content_id in (1, 2, 3):
            services.content_store.put(make_record(content_id=content_id))
            services.scheduler.enqueue(content_id)

        result = await services.scheduler.run_queue()

        assert result.processed == 2
        assert [r.content_id for r in classifier.requests] == [1, 2]
        assert services.scheduler.stats().counts == {"pending": 1, "running": 0, "complete": 2, "failed": 0}

    async def test_classifier_error_retries_then_fails(self, make_services, record):
        services = make_services(ProviderHTTPError(500, "upstream down"))
        services.content_store.put(record)
        services.scheduler.enqueue(1)

        for expected_attempts in (1, 2):
            await services.scheduler.run_queue()
            job = _jobs(services)[0]
            assert job.status == JobStatus.PENDING
            assert job.attempts == expected_attempts

        result = await services.scheduler.run_queue()
        job = _jobs(services)[0]
        assert result.failed == 1
        assert job.status == JobStatus.FAILED
        assert job.attempts == 3
        assert job.last_error == "HTTP 500: upstream down"
        assert services.schema_store.get(1).last_error == "HTTP 500: upstream down"

        assert (await services.scheduler.run_queue()).processed == 0

    async def test_missing_content_fails_terminally(self, services, scheduler):
        scheduler.enqueue(1)
        services.content_store.delete(1)

        await scheduler.run_queue()

        job = _jobs(services)[0]
        assert job.status == JobStatus.FAILED
        assert job.attempts == 1
        assert job.last_error == "Content 1 not found."

    async def test_validation_failure_keeps_draft(self, make_services, make_record):
        services = make_services(Classification(primary_type="BlogPosting"))
        services.content_store.put(make_record(title=""))
        services.scheduler.enqueue(1)

        await services.scheduler.run_queue()

        job = _jobs(services)[0]
        state = services.schema_store.get(1)
        assert job.last_error == VALIDATION_FAILED_MESSAGE
        assert job.status == JobStatus.PENDING
        assert state.draft_json
        assert not state.has_live
        assert state.last_error == VALIDATION_FAILED_MESSAGE

    async def test_classifier_timeout(self, settings, record, clock):
        settings.classifier.timeout_seconds = 0.05
        services = build_services(settings, classifier=FakeClassifier(hang=True), clock=clock)
        services.content_store.put(record)
        services.scheduler.enqueue(1)

        result = await services.scheduler.run_queue()

        assert result.failed == 1
        assert _jobs(services)[0].last_error == "Classifier timed out after 0.05s"

    async def test_unexpected_error_is_recorded(self, services, scheduler, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("<b>boom</b>")

        monkeypatch.setattr(services.builder, "build_graph", explode)
        scheduler.enqueue(1)

        result = await scheduler.run_queue()

        assert result.failed == 1
        assert _jobs(services)[0].last_error == "Unexpected error: boom"

    async def test_error_after_completion_keeps_job_complete(self, services, scheduler, monkeypatch):
        update = services.job_store.update

        def update_then_raise(job_id, **fields):
            updated = update(job_id, **fields)
            if fields.get("status") == JobStatus.COMPLETE:
                raise RuntimeError("connection reset")
            return updated

        monkeypatch.setattr(services.job_store, "update", update_then_raise)
        scheduler.enqueue(1)

        result = await scheduler.run_queue()

        job = _jobs(services)[0]
        assert result.completed == 1
        assert result.failed == 0
        assert job.status == JobStatus.COMPLETE
        assert job.attempts == 0
        assert services.schema_store.get(1).last_content_hash == job.content_hash

    async def test_zero_max_jobs_processes_nothing(self, services, scheduler, classifier):
        scheduler.enqueue(1)

        result = await scheduler.run_queue(0)

        assert not result.locked
        assert result.processed == 0
        assert classifier.calls == 0
        assert _jobs(services)[0].status == JobStatus.PENDING

    async def test_forced_reviewed_type_applied(self, services, scheduler):
        services.schema_store.update(1, reviewed_type="Hotel")
        scheduler.enqueue(1)

        await scheduler.run_queue()

        document = json.loads(services.schema_store.get(1).live_json)
        assert "Hotel" in [node["@type"] for node in document["@graph"]]

    async def test_already_claimed_job_skipped(self, services, scheduler, clock):
        scheduler.enqueue(1)
        job = _jobs(services)[0]
        services.job_store.claim(job.id, clock.now())

        assert await scheduler.process_job(job) is None


class TestMaintenance:
    def test_reap_stale_jobs(self, services, scheduler, clock):
        scheduler.enqueue(1)
        job = _jobs(services)[0]
        services.job_store.claim(job.id, clock.now())

        clock.advance(60)
        assert scheduler.reap_stale_jobs() == 0

        clock.advance(900)
        assert scheduler.reap_stale_jobs() == 1
        job = _jobs(services)[0]
        assert job.status == JobStatus.PENDING
        assert job.attempts == 1

    def test_stats_reports_last_failure(self, services, scheduler, clock):
        scheduler.enqueue(1)
        job = _jobs(services)[0]
        scheduler.fail_job(job, "first", terminal=True)

        stats = scheduler.stats()
        assert stats.counts["failed"] == 1
        assert stats.last_failed.content_id == 1
        assert stats.last_failed.last_error == "first"
        assert stats.last_failed.updated_at == clock.now()

    def test_empty_stats(self, scheduler):
        stats = scheduler.stats()
        assert stats.counts == {"pending": 0, "running": 0, "complete": 0, "failed": 0}
        assert stats.last_failed is None
