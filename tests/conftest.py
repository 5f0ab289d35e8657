"""Shared fixtures for sequence batch processor tests."""

import itertools
import threading
import time
from typing import Dict, Iterable, Optional

import pytest

from sequence_batch_processor.clients.base import BaseJobClient
from sequence_batch_processor.core.models import JobRequest, JobStatus, SequenceKind, SequencePayload
from sequence_batch_processor.errors import JobClientError, NotReadyError, SubmissionError
from sequence_batch_processor.persistence.ledger import PendingJobLedger
from sequence_batch_processor.persistence.result_sink import FileResultSink


class FakeJobClient(BaseJobClient):
    """In-memory job client for testing.

    Counts every call and the number of concurrent submissions, so tests can
    check retry bounds and the parallelism limit.
    """

    def __init__(
        self,
        statuses: Optional[Dict[str, JobStatus]] = None,
        results: Optional[Dict[str, str]] = None,
        failures_before_success: Optional[Dict[str, int]] = None,
        always_failing: Iterable[str] = (),
        poll_errors: Iterable[str] = (),
        submit_delay: float = 0.0,
    ):
        self.statuses = dict(statuses or {})
        self.results = dict(results or {})
        self.failures_before_success = dict(failures_before_success or {})
        self.always_failing = set(always_failing)
        self.poll_errors = set(poll_errors)
        self.submit_delay = submit_delay

        self.submit_calls = []
        self.poll_calls = []
        self.fetch_calls = []
        self.close_calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def submit(self, sequence: str, kind: SequenceKind) -> str:
        with self._lock:
            self.submit_calls.append((sequence, kind))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.submit_delay:
                time.sleep(self.submit_delay)

            with self._lock:
                if sequence in self.always_failing:
                    raise SubmissionError(f"rejected {sequence}")
                remaining = self.failures_before_success.get(sequence, 0)
                if remaining > 0:
                    self.failures_before_success[sequence] = remaining - 1
                    raise SubmissionError(f"transient failure for {sequence}")
                job_id = f"job-{next(self._ids)}"

            self.statuses.setdefault(job_id, JobStatus.PENDING)
            return job_id
        finally:
            with self._lock:
                self.in_flight -= 1

    def poll_status(self, job_id: str) -> JobStatus:
        self.poll_calls.append(job_id)
        if job_id in self.poll_errors:
            raise JobClientError(f"status unavailable for {job_id}")
        return self.statuses.get(job_id, JobStatus.PENDING)

    def fetch_result(self, job_id: str) -> str:
        self.fetch_calls.append(job_id)
        if self.statuses.get(job_id) != JobStatus.FINISHED:
            raise NotReadyError(f"{job_id} is not finished")
        return self.results[job_id]

    def get_name(self) -> str:
        return "fake"

    def close(self):
        self.close_calls += 1


def make_request(output_target: str, sequence: Optional[str] = None, group_key: str = "G1") -> JobRequest:
    """Build a request whose sequence defaults to its output target."""
    return JobRequest(
        group_key=group_key,
        output_target=output_target,
        payload=SequencePayload(sequence=sequence or f">{output_target}\nMKV", kind=SequenceKind.PROTEIN),
    )


@pytest.fixture
def output_dir(tmp_path):
    """Output directory holding one subdirectory per group."""
    path = tmp_path / "output"
    path.mkdir()
    return path


@pytest.fixture
def ledger(output_dir):
    return PendingJobLedger(output_dir)


@pytest.fixture
def result_sink(output_dir):
    return FileResultSink(output_dir)


@pytest.fixture
def fake_client():
    return FakeJobClient()
