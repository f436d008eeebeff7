"""
Durable generation queue.

Jobs are rows keyed by (content_id, content_hash). A drain run takes the
shared lease lock, claims up to N pending jobs in id order and runs each
through classify, build, validate and persist. Every failure inside a job is
recorded on the job row and on the content's schema state; nothing escapes
`run_queue`.

Job lifecycle::

    pending -> running -> complete
                       -> pending   (attempts < max_attempts)
                       -> failed    (attempts >= max_attempts, or content gone)
"""

import asyncio
import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator, Optional, Union

from schemaai.classification import AUTO_TYPE, SUPPORTED_TYPES, Classification, ClassificationRequest
from schemaai.clock import Clock, SystemClock
from schemaai.content import (
    PUBLISHED_STATUSES,
    SUPPORTED_KINDS,
    ContentRecord,
    ContentStoreInterface,
    compute_content_hash,
)
from schemaai.errors import ClassifierError, ClassifierTimeoutError, ContentNotFoundError
from schemaai.graph.builder import GraphBuilder
from schemaai.persistence import PersistenceGateway
from schemaai.pipeline.classifier import ClassifierInterface
from schemaai.queue.models import FailedJobSummary, QueueStats, RunResult
from schemaai.settings import SchemaAISettings
from schemaai.storage.interfaces import JobStoreInterface, RunLockInterface, SchemaStoreInterface
from schemaai.storage.models import Job, JobStatus
from schemaai.text import strip_tags

logger = logging.getLogger(__name__)

LOCK_KEY = "schemaai_queue_lock"
VALIDATION_FAILED_MESSAGE = "Generated JSON failed to validate locally."
STALE_JOB_MESSAGE = "Job exceeded the running time limit."
MAX_RUN_NOW = 5


def clamp_run_size(value: Optional[int], default: int = 2) -> int:
    """Clamp an ad hoc drain size to 1..MAX_RUN_NOW."""
    if value is None:
        value = default
    return max(1, min(MAX_RUN_NOW, int(value)))


class Scheduler:
    def __init__(
        self,
        settings: SchemaAISettings,
        content_store: ContentStoreInterface,
        job_store: JobStoreInterface,
        schema_store: SchemaStoreInterface,
        run_lock: RunLockInterface,
        classifier: ClassifierInterface,
        builder: GraphBuilder,
        gateway: PersistenceGateway,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings
        self.content_store = content_store
        self.job_store = job_store
        self.schema_store = schema_store
        self.lock = run_lock
        self.classifier = classifier
        self.builder = builder
        self.gateway = gateway
        self.clock = clock or SystemClock()

    @property
    def queue_settings(self):
        return self.settings.queue

    def enqueue(self, content_id: int, forced_type: str = AUTO_TYPE) -> bool:
        """
        Queue generation for a content item at its current hash.

        Returns True when a job is queued or one is already active for this
        hash; False when the content does not exist or is not a post/page.
        """
        forced_type = forced_type or AUTO_TYPE
        if forced_type != AUTO_TYPE and forced_type not in SUPPORTED_TYPES:
            raise ValueError(f"Unsupported template type: {forced_type}")

        record = self.content_store.get(content_id)
        if record is None or not record.is_supported_kind:
            logger.info("Not enqueuing content %s: missing or unsupported kind", content_id)
            return False

        if forced_type != AUTO_TYPE:
            self.schema_store.update(content_id, template_id=forced_type)

        content_hash = compute_content_hash(record)
        if self.job_store.find_active(content_id, content_hash) is not None:
            logger.debug("Content %s already queued at hash %s", content_id, content_hash)
            return True

        job = self.job_store.create(content_id, content_hash, self.queue_settings.max_attempts, self.clock.now())
        logger.info("Queued job %s for content %s", job.id, content_id)
        return True

    async def maybe_enqueue_on_save(self, record: ContentRecord) -> bool:
        """Enqueue after a CMS save when the record is eligible and its content changed."""
        if record.is_revision or not record.is_supported_kind or not record.is_published:
            return False
        if not self.queue_settings.auto_on_save:
            return False
        if not self.settings.classifier.api_key:
            logger.debug("Skipping save hook for content %s: no API key", record.content_id)
            return False

        state = self.schema_store.get(record.content_id)
        if compute_content_hash(record) == state.last_content_hash:
            return False

        enqueued = self.enqueue(record.content_id, state.template_id or AUTO_TYPE)
        if enqueued and self.queue_settings.run_on_save:
            await self.run_queue(1)
        return enqueued

    def _bulk_enqueue(self, limit: Optional[int], missing_only: bool) -> int:
        limit = limit or self.queue_settings.bulk_limit
        queued = 0
        for content_id in self.content_store.list_ids(SUPPORTED_KINDS, PUBLISHED_STATUSES, limit):
            if missing_only and self.schema_store.has_live(content_id):
                continue
            state = self.schema_store.get(content_id)
            if self.enqueue(content_id, state.template_id or AUTO_TYPE):
                queued += 1
        logger.info("Bulk enqueue (missing_only=%s) queued %d items", missing_only, queued)
        return queued

    def enqueue_missing(self, limit: Optional[int] = None) -> int:
        """Queue every published post/page that has no live schema. Returns the number queued."""
        return self._bulk_enqueue(limit, missing_only=True)

    def enqueue_all(self, limit: Optional[int] = None) -> int:
        return self._bulk_enqueue(limit, missing_only=False)

    @contextmanager
    def run_lock(self) -> Iterator[Optional[str]]:
        """Hold the drain lease for the duration of the block; yields None when it is taken."""
        token = self.lock.acquire(LOCK_KEY, self.queue_settings.lock_ttl_seconds, self.clock.now())
        try:
            yield token
        finally:
            if token is not None:
                self.lock.release(LOCK_KEY, token)

    async def run_queue(self, max_jobs: Optional[int] = None) -> RunResult:
        max_jobs = self.queue_settings.batch_size if max_jobs is None else max_jobs
        with self.run_lock() as token:
            if token is None:
                logger.info("Queue run skipped: lock is held")
                return RunResult(locked=True)

            result = RunResult()
            for job in self.job_store.list_pending(max_jobs):
                try:
                    final = await self.process_job(job)
                except Exception as e:
                    logger.exception("Job %s crashed: %s", job.id, e)
                    final = self._recover_crashed(job, e)
                if final is not None:
                    result.processed += 1
                    if final.status == JobStatus.COMPLETE:
                        result.completed += 1
                    else:
                        result.failed += 1
                if not self.lock.renew(LOCK_KEY, token, self.queue_settings.lock_ttl_seconds, self.clock.now()):
                    logger.warning("Lost queue lock after job %s; stopping this run", job.id)
                    break
            return result

    async def classify(self, request: ClassificationRequest) -> Classification:
        timeout = self.settings.classifier.timeout_seconds
        try:
            return await asyncio.wait_for(self.classifier.classify(request), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ClassifierTimeoutError(f"Classifier timed out after {timeout:g}s") from exc

    async def process_job(self, job: Job) -> Optional[Job]:
        """
        Run one job end to end and return its final state.

        Returns None when the job could not be claimed (another worker got it
        or it is no longer pending).
        """
        now = self.clock.now()
        if not self.job_store.claim(job.id, now):
            logger.info("Job %s was not pending; skipping", job.id)
            return None
        job = job.model_copy(update={"status": JobStatus.RUNNING, "started_at": now, "updated_at": now})

        record = self.content_store.get(job.content_id)
        if record is None:
            return self.fail_job(job, ContentNotFoundError(job.content_id), terminal=True)

        state = self.schema_store.get(job.content_id)
        forced_type = state.template_id or AUTO_TYPE
        forced_reviewed = state.reviewed_type
        request = ClassificationRequest.from_content(
            record,
            forced_type,
            forced_reviewed,
            site_url=self.settings.site.url,
            max_chars=self.settings.classifier.max_text_chars,
        )

        try:
            classification = await self.classify(request)
        except ClassifierError as e:
            logger.warning("Classifier failed for job %s: %s", job.id, e)
            return self.fail_job(job, e)

        classification = classification.with_forced_reviewed_type(forced_reviewed)
        graph = self.builder.build_graph(record, classification)
        saved = self.gateway.save(
            job.content_id,
            graph.to_json(),
            self.builder.resolve_template(classification),
            classification.justification,
            classification.summary,
            classification.missing_info,
        )
        if not saved:
            return self.fail_job(job, VALIDATION_FAILED_MESSAGE)

        self.schema_store.update(job.content_id, last_content_hash=job.content_hash)
        done = self.clock.now()
        completed = self.job_store.update(
            job.id, status=JobStatus.COMPLETE, completed_at=done, updated_at=done, last_error=""
        )
        logger.info("Job %s complete for content %s", job.id, job.content_id)
        return completed

    def _recover_crashed(self, job: Job, error: Exception) -> Optional[Job]:
        """Fail a job that raised mid-run, unless it already left the running state."""
        current = self.job_store.get(job.id)
        if current is None or current.status == JobStatus.PENDING:
            return None
        if current.status != JobStatus.RUNNING:
            return current
        return self.fail_job(current, f"Unexpected error: {error}")

    def fail_job(self, job: Job, error: Union[str, Exception], terminal: bool = False) -> Optional[Job]:
        """
        Record a failed attempt. The job goes back to pending until its
        attempts are used up; `terminal` fails it right away.
        """
        message = strip_tags(str(error)) or type(error).__name__
        attempts = job.attempts + 1
        status = JobStatus.FAILED if terminal or attempts >= job.max_attempts else JobStatus.PENDING
        updated = self.job_store.update(
            job.id, status=status, attempts=attempts, last_error=message, updated_at=self.clock.now()
        )
        self.schema_store.update(job.content_id, last_error=message)
        log = logger.error if status == JobStatus.FAILED else logger.warning
        log("Job %s attempt %d/%d failed (%s): %s", job.id, attempts, job.max_attempts, status.value, message)
        return updated

    def reap_stale_jobs(self, older_than: Optional[int] = None) -> int:
        """Fail running jobs whose worker died mid-job. Returns the number reaped."""
        seconds = older_than if older_than is not None else self.queue_settings.stale_running_seconds
        cutoff = self.clock.now() - timedelta(seconds=seconds)
        reaped = 0
        for job in self.job_store.list_stale_running(cutoff):
            self.fail_job(job, STALE_JOB_MESSAGE)
            reaped += 1
        if reaped:
            logger.warning("Reaped %d stale running jobs", reaped)
        return reaped

    def stats(self) -> QueueStats:
        last = self.job_store.last_failed()
        return QueueStats(
            counts=self.job_store.count_by_status(),
            last_failed=FailedJobSummary.from_job(last) if last else None,
        )


