"""Main orchestrator for sequence batch processing.

Coordinates the two operator workflows:
1. Submit new batch: run the worker pool, then merge the new pending
   entries into the group's ledger
2. Review pending: run one reconciliation pass per group

The Orchestrator owns the job client it is given and releases it on close(),
so it should be used as a context manager. It keeps no state of its own
beyond the collaborators it forwards to; the CLI is a thin wrapper around it.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from .models import BatchSummary, JobRequest, ReviewSummary
from .reconciliation import ReconciliationLoop
from .worker_pool import WorkerPool
from ..clients.base import BaseJobClient
from ..config import DEFAULT_PARALLELISM, MAX_SUBMISSION_ATTEMPTS
from ..errors import PersistenceError
from ..persistence.ledger import PendingJobLedger
from ..persistence.result_sink import ResultSink


logger = logging.getLogger(__name__)


class Orchestrator:
    """Main orchestrator for sequence batch processing."""

    def __init__(
        self,
        client: BaseJobClient,
        ledger: PendingJobLedger,
        result_sink: ResultSink,
        max_attempts: int = MAX_SUBMISSION_ATTEMPTS,
    ):
        """Initialize orchestrator.

        Args:
            client: Job client to submit and poll with; released by close()
            ledger: Ledger for pending entries
            result_sink: Destination for finished results
            max_attempts: Submission attempts per request
        """
        self.client = client
        self.ledger = ledger
        self.result_sink = result_sink
        self.max_attempts = max_attempts

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self):
        """Release the job client's connection resource."""
        self.client.close()

    def submit_batch(
        self, group_key: str, requests: Iterable[JobRequest], parallelism: int = DEFAULT_PARALLELISM
    ) -> BatchSummary:
        """Submit a batch of requests for one group and record them as pending.

        Entries already in the group's ledger are kept; the new entries are
        added to them.

        Args:
            group_key: Group every request belongs to
            requests: Requests to submit
            parallelism: Maximum concurrent submissions, in [1, 10]

        Returns:
            BatchSummary with submitted/failed/total counts

        Raises:
            ConfigurationError: If parallelism is out of range
            ValueError: If a request belongs to a different group
            PersistenceError: If the ledger cannot be updated
        """
        requests = list(requests)
        for request in requests:
            if request.group_key != group_key:
                raise ValueError(
                    f"Request {request.output_target!r} belongs to group {request.group_key!r}, not {group_key!r}"
                )

        pool = WorkerPool(client=self.client, max_workers=parallelism, max_attempts=self.max_attempts)

        logger.info(f"Submitting {len(requests)} jobs for group {group_key}")
        batch = pool.run(requests)

        new_entries = set(batch.entries)
        with self.ledger.locked(group_key):
            try:
                pending = self.ledger.load(group_key) | new_entries
                if new_entries:
                    self.ledger.save(group_key, pending)
            except PersistenceError:
                for entry in sorted(new_entries):
                    logger.error(f"Pending job not recorded: {entry.output_target},{entry.job_id}")
                raise

        summary = BatchSummary(
            group_key=group_key,
            submitted=batch.submitted,
            failed=batch.failed,
            total=batch.total,
            pending_total=len(pending),
            failed_targets=sorted(r.request.output_target for r in batch.failures),
        )
        logger.info(
            f"Group {group_key}: {summary.submitted}/{summary.total} submitted, {summary.failed} failed, "
            f"{summary.pending_total} pending for review"
        )
        return summary

    def submit_requests(
        self, requests: Iterable[JobRequest], parallelism: int = DEFAULT_PARALLELISM
    ) -> Dict[str, BatchSummary]:
        """Submit requests spanning several groups, one batch per group.

        Returns:
            Dict mapping group key to its BatchSummary, in first-seen order
        """
        by_group: Dict[str, List[JobRequest]] = OrderedDict()
        for request in requests:
            by_group.setdefault(request.group_key, []).append(request)

        return {
            group_key: self.submit_batch(group_key, group_requests, parallelism)
            for group_key, group_requests in by_group.items()
        }

    def review_pending(
        self, group_keys: Optional[Iterable[str]] = None, parallelism: int = DEFAULT_PARALLELISM
    ) -> Dict[str, ReviewSummary]:
        """Run one reconciliation pass for each group.

        Args:
            group_keys: Groups to review; None reviews every group with a ledger
            parallelism: Entries of one group polled concurrently, in [1, 10]

        Returns:
            Dict mapping group key to its ReviewSummary

        Raises:
            ConfigurationError: If parallelism is out of range
            PersistenceError: If a ledger cannot be read or rewritten
        """
        loop = ReconciliationLoop(
            client=self.client, ledger=self.ledger, result_sink=self.result_sink, parallelism=parallelism
        )

        if group_keys is None:
            group_keys = self.ledger.list_groups()

        summaries = OrderedDict()
        for group_key in group_keys:
            summaries[group_key] = loop.run(group_key)

        if not summaries:
            logger.info("No pending jobs to review")
        return summaries
