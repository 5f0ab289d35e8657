"""Worker pool for submitting sequence jobs.

Runs submissions against a job client with bounded parallelism:
- At most max_workers submission calls are in flight at once
- Each request gets up to max_attempts sequential attempts in one task
- One request running out of attempts never aborts the rest of the batch
- Outcomes are collected in completion order
"""

import logging
import threading
import traceback
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, Optional

from .models import BatchResult, JobOutcome, JobRequest, PendingEntry, SubmissionResult
from ..clients.base import BaseJobClient
from ..config import DEFAULT_PARALLELISM, MAX_SUBMISSION_ATTEMPTS, validate_parallelism


logger = logging.getLogger(__name__)

POOL_STOPPED = "worker pool stopped"


class WorkerPool:
    """Manages a pool of submission workers."""

    def __init__(
        self,
        client: BaseJobClient,
        max_workers: int = DEFAULT_PARALLELISM,
        max_attempts: int = MAX_SUBMISSION_ATTEMPTS,
        on_submitted: Optional[Callable[[SubmissionResult], None]] = None,
        on_failed: Optional[Callable[[SubmissionResult], None]] = None,
    ):
        """Initialize worker pool.

        Args:
            client: Job client shared by all workers
            max_workers: Maximum concurrent submissions, in [1, 10]
            max_attempts: Attempts per request before it is reported as failed
            on_submitted: Callback when a request is submitted successfully
            on_failed: Callback when a request fails permanently

        Raises:
            ConfigurationError: If max_workers is out of range
        """
        self.client = client
        self.max_workers = validate_parallelism(max_workers)
        self.max_attempts = max_attempts
        self.on_submitted = on_submitted
        self.on_failed = on_failed

        self.executor: Optional[ThreadPoolExecutor] = None
        self.in_flight = 0

        self.lock = threading.Lock()

        self.running = False

    def start(self):
        """Start the worker pool."""
        with self.lock:
            if self.running:
                return
            self.executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="submit")
            self.running = True

    def stop(self, wait: bool = True):
        """Stop the worker pool.

        Queued requests are cancelled and running requests give up before
        their next attempt.

        Args:
            wait: Block until running submissions have returned
        """
        with self.lock:
            self.running = False
            executor = self.executor
            self.executor = None

        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=True)

    def submit_request(self, request: JobRequest) -> Future:
        """Queue a request for submission.

        Returns:
            Future resolving to the request's SubmissionResult

        Raises:
            RuntimeError: If the pool has not been started
        """
        with self.lock:
            if not self.running or self.executor is None:
                raise RuntimeError("Worker pool is not running")

            return self.executor.submit(self._submit_with_retry, request)

    def run(self, requests: Iterable[JobRequest]) -> BatchResult:
        """Submit every request and wait for all outcomes.

        Args:
            requests: Requests to submit, in any order

        Returns:
            BatchResult with one SubmissionResult per request
        """
        requests = list(requests)
        batch = BatchResult()
        if not requests:
            return batch

        self.start()
        try:
            futures = {self.submit_request(request): request for request in requests}

            for future in as_completed(futures):
                try:
                    batch.results.append(future.result())
                except CancelledError:
                    request = futures[future]
                    result = SubmissionResult(request=request, outcome=JobOutcome.failed(POOL_STOPPED))
                    self._report_failure(result)
                    batch.results.append(result)
        finally:
            self.stop()

        logger.info(f"Submission complete: {batch.submitted}/{batch.total} submitted, {batch.failed} failed")
        return batch

    def get_active_count(self) -> int:
        """Get number of submission calls currently in flight."""
        with self.lock:
            return self.in_flight

    def _submit_with_retry(self, request: JobRequest) -> SubmissionResult:
        """Submit one request, retrying on any failure (runs in worker thread)."""
        name = request.output_target
        last_error = None
        attempts = 0

        while attempts < self.max_attempts:
            if not self.running:
                last_error = POOL_STOPPED
                break

            attempts += 1
            logger.debug(f"Submitting {name} to {self.client.get_name()} (attempt {attempts}/{self.max_attempts})")

            with self.lock:
                self.in_flight += 1
            try:
                job_id = self.client.submit(request.payload.sequence, request.payload.kind)
                # the ledger must be able to store the id
                PendingEntry(output_target=name, job_id=job_id)
            except Exception as e:
                last_error = str(e) or e.__class__.__name__
                logger.debug(f"Submission failure for {name}:\n{traceback.format_exc()}")
                if attempts < self.max_attempts:
                    logger.warning(f"Retrying submission for {name} ({attempts}/{self.max_attempts}): {last_error}")
                continue
            finally:
                with self.lock:
                    self.in_flight -= 1

            result = SubmissionResult(request=request, outcome=JobOutcome.submitted(job_id), attempts=attempts)
            logger.info(f"Submitted {name} as job {job_id}")
            self._notify(self.on_submitted, result)
            return result

        result = SubmissionResult(request=request, outcome=JobOutcome.failed(last_error), attempts=attempts)
        self._report_failure(result)
        return result

    def _report_failure(self, result: SubmissionResult):
        logger.error(
            f"Submission FAILED for {result.request.output_target} after {result.attempts} attempts: "
            f"{result.outcome.cause}"
        )
        self._notify(self.on_failed, result)

    def _notify(self, callback: Optional[Callable[[SubmissionResult], None]], result: SubmissionResult):
        if callback is None:
            return
        try:
            callback(result)
        except Exception:
            logger.error(f"Callback failed for {result.request.output_target}:\n{traceback.format_exc()}")
