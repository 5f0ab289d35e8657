"""Reconciliation of pending jobs.

Drives one group's ledger toward empty:
1. Load the pending entries
2. Poll each job; write results of finished jobs, record errored ones
3. Save the entries that are still unresolved (or clear the ledger)

Running a pass twice with no change on the service computes the same
remaining set. A result written just before a crash is simply written again
on the next pass, since result writes are last-write-wins.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import List, Tuple

from .models import JobOutcome, JobStatus, PendingEntry, ReviewSummary
from ..clients.base import BaseJobClient
from ..config import DEFAULT_PARALLELISM, validate_parallelism
from ..errors import JobClientError, ResultWriteError
from ..persistence.ledger import PendingJobLedger
from ..persistence.result_sink import ResultSink


logger = logging.getLogger(__name__)


class EntryResolution(Enum):
    """What a reconciliation pass did with one pending entry."""

    RESOLVED = "resolved"
    ERRORED = "errored"
    PENDING = "pending"
    WRITE_FAILED = "write_failed"
    POLL_FAILED = "poll_failed"

    def removes_entry(self) -> bool:
        return self in (EntryResolution.RESOLVED, EntryResolution.ERRORED)


class ReconciliationLoop:
    """Resolves pending entries of a group against the job service."""

    def __init__(
        self,
        client: BaseJobClient,
        ledger: PendingJobLedger,
        result_sink: ResultSink,
        parallelism: int = DEFAULT_PARALLELISM,
    ):
        """Initialize reconciliation loop.

        Args:
            client: Job client used to poll and fetch results
            ledger: Ledger holding the pending entries
            result_sink: Destination for results and error markers
            parallelism: Entries of one group polled concurrently, in [1, 10]

        Raises:
            ConfigurationError: If parallelism is out of range
        """
        self.client = client
        self.ledger = ledger
        self.result_sink = result_sink
        self.parallelism = validate_parallelism(parallelism)

    def run(self, group_key: str) -> ReviewSummary:
        """Run one reconciliation pass over a group.

        The group's ledger lock is held for the whole pass.

        Returns:
            ReviewSummary; all_complete is True iff nothing remains pending

        Raises:
            PersistenceError: If the ledger cannot be read or rewritten
        """
        with self.ledger.locked(group_key):
            entries = self.ledger.load(group_key)
            summary = ReviewSummary(group_key=group_key, total=len(entries))

            if not entries:
                logger.info(f"All jobs completed for group {group_key}")
                return summary

            resolutions = self._resolve_all(group_key, sorted(entries))

            remaining = set()
            for entry, resolution in resolutions:
                if resolution == EntryResolution.RESOLVED:
                    summary.resolved += 1
                elif resolution == EntryResolution.ERRORED:
                    summary.errored += 1
                elif resolution == EntryResolution.WRITE_FAILED:
                    summary.write_failures += 1
                elif resolution == EntryResolution.POLL_FAILED:
                    summary.poll_failures += 1

                if not resolution.removes_entry():
                    remaining.add(entry)

            if remaining:
                self.ledger.save(group_key, remaining)
            else:
                self.ledger.clear(group_key)

        summary.remaining_entries = sorted(remaining)
        if summary.all_complete:
            logger.info(f"All jobs completed for group {group_key}")
        else:
            logger.info(f"Updated pending job count for group {group_key} - {summary.remaining}")
        return summary

    def _resolve_all(self, group_key: str, entries: List[PendingEntry]) -> List[Tuple[PendingEntry, EntryResolution]]:
        if self.parallelism == 1 or len(entries) == 1:
            return [(entry, self._resolve_entry(group_key, entry)) for entry in entries]

        with ThreadPoolExecutor(max_workers=self.parallelism, thread_name_prefix="reconcile") as executor:
            resolutions = executor.map(lambda entry: self._resolve_entry(group_key, entry), entries)
            return list(zip(entries, resolutions))

    def _resolve_entry(self, group_key: str, entry: PendingEntry) -> EntryResolution:
        job_id = entry.job_id

        try:
            status = self.client.poll_status(job_id)
        except JobClientError as e:
            logger.warning(f"Could not get status of job - {job_id}, keeping it pending: {e}")
            return EntryResolution.POLL_FAILED

        if status == JobStatus.FINISHED:
            try:
                outcome = JobOutcome.finished(self.client.fetch_result(job_id))
            except JobClientError as e:
                logger.warning(f"Could not fetch result of job - {job_id}, keeping it pending: {e}")
                return EntryResolution.POLL_FAILED

            logger.debug(f"Job - {job_id} is completed, writing output to file - {entry.output_target}")
            try:
                self.result_sink.write(group_key, entry.output_target, outcome.result)
            except ResultWriteError as e:
                logger.error(f"Failed to write result of job - {job_id}, keeping it pending: {e}")
                return EntryResolution.WRITE_FAILED
            return EntryResolution.RESOLVED

        if status == JobStatus.ERRORED:
            detail = f"Job {job_id} for {entry.output_target} failed on {self.client.get_name()}; resubmit it"
            try:
                self.result_sink.write_error(group_key, entry.output_target, detail)
            except ResultWriteError as e:
                logger.error(f"Failed to record error of job - {job_id}, keeping it pending: {e}")
                return EntryResolution.WRITE_FAILED
            logger.error(detail)
            return EntryResolution.ERRORED

        logger.info(f"Job - {job_id} is still in {status.value.upper()} status..")
        return EntryResolution.PENDING
