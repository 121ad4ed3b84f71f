"""
Job orchestrator - drives the import queue through extraction,
recognition and validation.
"""
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..models import (
    BatchSummary,
    Job,
    JobOutcome,
    JobStatus,
    MemoryPreferencesStore,
    PreferencesManager,
    ProgressUpdate,
    Record,
    SubmissionResult,
)
from .limiter import ConcurrencyLimiter
from .page_extractor import PageExtractor
from .recognizer import FieldRecognizer
from .validator import RecordValidator

ProgressCallback = Callable[[ProgressUpdate], None]


class JobOrchestrator:
    """
    Owns the job queue and the accumulated record set.

    Jobs run on a thread pool of ``max_concurrent_files`` workers and start
    in submission order; page extraction is additionally gated by the
    shared limiter. Job status and the record set are only written under
    ``self._lock``.
    """

    def __init__(self,
                 page_extractor: PageExtractor,
                 preferences: Optional[PreferencesManager] = None,
                 recognizer: Optional[FieldRecognizer] = None,
                 validator: Optional[RecordValidator] = None,
                 limiter: Optional[ConcurrencyLimiter] = None,
                 max_concurrent_files: int = 4,
                 max_files: int = 100):
        self.page_extractor = page_extractor
        self.preferences = preferences or PreferencesManager(MemoryPreferencesStore())
        self.recognizer = recognizer or FieldRecognizer()
        self.validator = validator or RecordValidator()
        self.limiter = limiter or ConcurrencyLimiter(max_concurrent_files)
        self.max_concurrent_files = max_concurrent_files
        self.max_files = max_files

        self._jobs: List[Job] = []
        self._records: Dict[str, List[Record]] = {}
        self._lock = threading.Lock()
        self._cancel_flag = threading.Event()
        self._running = threading.Event()

    # ==================== QUEUE ====================
    @property
    def jobs(self) -> List[Job]:
        with self._lock:
            return list(self._jobs)

    @property
    def records(self) -> List[Record]:
        """All records, grouped in job submission order"""
        with self._lock:
            return [r for job in self._jobs for r in self._records.get(job.id, [])]

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    def submit(self, files: Sequence[Tuple[str, bytes]]) -> SubmissionResult:
        """Queue documents; anything beyond ``max_files`` is rejected"""
        with self._lock:
            remaining = max(0, self.max_files - len(self._jobs))
            selected = list(files)[:remaining]
            accepted = [Job(filename=name, content=content) for name, content in selected]
            self._jobs.extend(accepted)

        result = SubmissionResult(accepted=accepted, rejected=len(files) - len(accepted), limit=self.max_files)
        if result.rejected:
            logger.warning(result.message)
        logger.info(f"Queued {len(accepted)} file(s)")
        return result

    def clear(self):
        """Drop all jobs and records"""
        if self.is_running:
            raise RuntimeError("Cannot clear the queue while a run is in progress")
        with self._lock:
            self._jobs.clear()
            self._records.clear()

    def cancel(self):
        """Stop before the next job starts; running jobs finish"""
        logger.warning("Cancellation requested")
        self._cancel_flag.set()

    def is_cancelled(self) -> bool:
        return self._cancel_flag.is_set()

    # ==================== RUN ====================
    def run(self, progress_callback: Optional[ProgressCallback] = None) -> BatchSummary:
        """
        Process every PENDING job. Jobs in any other status are reported
        as SKIPPED and keep their status.
        """
        if self._running.is_set():
            raise RuntimeError("A run is already in progress")
        self._running.set()
        self._cancel_flag.clear()

        summary = BatchSummary()
        try:
            snapshot = self.jobs
            pending = [job for job in snapshot if job.status == JobStatus.PENDING]
            logger.info(f"Starting run: {len(pending)} pending, {len(snapshot) - len(pending)} skipped "
                        f"(max workers: {self.max_concurrent_files})")

            pending_ids = {job.id for job in pending}
            processed: Dict[str, bool] = {}
            with ThreadPoolExecutor(max_workers=self.max_concurrent_files) as executor:
                futures = [
                    executor.submit(self._run_job, job, progress_callback, processed)
                    for job in pending
                ]
                for future in futures:
                    future.result()

            for job in snapshot:
                if job.id not in pending_ids:
                    summary.outcomes.append(JobOutcome(job_id=job.id, filename=job.filename,
                                                       status=JobStatus.SKIPPED))
                elif processed.get(job.id):
                    summary.outcomes.append(JobOutcome(
                        job_id=job.id,
                        filename=job.filename,
                        status=job.status,
                        record_count=job.record_count or 0,
                        error_message=job.error_message,
                    ))
            summary.cancelled = self._cancel_flag.is_set()
        finally:
            self._running.clear()

        summary.finalize()
        logger.info(f"Run complete: {summary.successful} ok, {summary.failed} failed, "
                    f"{summary.skipped} skipped{' (cancelled)' if summary.cancelled else ''} "
                    f"(total time: {summary.total_time_seconds:.2f}s)")
        return summary

    def _run_job(self, job: Job, callback: Optional[ProgressCallback], processed: Dict[str, bool]):
        if self._cancel_flag.is_set():
            logger.info(f"Not starting {job.filename}: run cancelled")
            return

        with self._lock:
            processed[job.id] = True
            job.transition(JobStatus.PROCESSING)
            job.report_progress(1)
        self._send_progress(job, callback, f"Processando {job.filename}...")

        holding_slot = False
        try:
            self.limiter.acquire()
            holding_slot = True
            extraction = self.page_extractor.extract(
                job.content,
                job.filename,
                progress_callback=lambda p: self._on_page_progress(job, p, callback),
            )
            self.limiter.release()
            holding_slot = False

            records = self.recognizer.recognize(
                extraction.pages, job.filename, file_id=job.id, warnings=extraction.warnings()
            )
            records = self.validator.validate_all(records, self.preferences.schema_fields)

            with self._lock:
                self._records[job.id] = records
                job.record_count = len(records)
                job.transition(JobStatus.OK)
                job.report_progress(100)
            self._send_progress(job, callback, f"Concluído: {job.filename}")

        except Exception as e:
            if holding_slot:
                self.limiter.release()
            logger.error(f"Error processing {job.filename}: {e}")
            with self._lock:
                job.error_message = str(e) or type(e).__name__
                job.transition(JobStatus.ERROR)
                job.report_progress(100)
            self._send_progress(job, callback, f"Erro: {job.filename}")

    def _on_page_progress(self, job: Job, progress: int, callback: Optional[ProgressCallback]):
        with self._lock:
            job.report_progress(progress)
        self._send_progress(job, callback, f"{job.filename}: {job.progress}%")

    def _send_progress(self, job: Job, callback: Optional[ProgressCallback], message: str):
        """Send progress update via callback"""
        if not callback:
            return
        with self._lock:
            update = ProgressUpdate(job_id=job.id, filename=job.filename, status=job.status,
                                    progress=job.progress, message=message)
        try:
            callback(update)
        except Exception as e:
            logger.error(f"Error in progress callback: {e}")

    # ==================== SCHEMA CHANGES ====================
    def revalidate(self, schema: Optional[List[str]] = None):
        """Re-run validation on every record, e.g. after the schema changed"""
        schema = schema if schema is not None else self.preferences.schema_fields
        with self._lock:
            for job_id, records in self._records.items():
                self._records[job_id] = self.validator.validate_all(records, schema)
        logger.info("Records revalidated against the current schema")
