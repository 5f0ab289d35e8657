"""Sequence Batch Processor

Submits biological-sequence analysis jobs to slow, rate-limited external
services, tracks them across process restarts, and collects their results.

Key Components:
- Orchestrator: Submit-new-batch and review-pending workflows
- WorkerPool: Bounded-concurrency submission with retries
- ReconciliationLoop: Polls pending jobs and writes finished results
- PendingJobLedger: Crash-consistent per-group record of pending jobs
- FileResultSink: Writes results and error markers to the output directory
- Clients: External job services (Clustal Omega, etc.)
- Enumerators: Turn input directories and manifests into job requests

"""

from pathlib import Path
from typing import Optional

from .core.orchestrator import Orchestrator
from .core.models import (
    JobRequest,
    SequencePayload,
    SequenceKind,
    PendingEntry,
    JobStatus,
    JobOutcome,
    BatchSummary,
    ReviewSummary,
)
from .core.reconciliation import ReconciliationLoop
from .core.worker_pool import WorkerPool
from .persistence.ledger import PendingJobLedger
from .persistence.result_sink import ResultSink, FileResultSink
from .clients.base import BaseJobClient
from .clients.clustal_omega_client import ClustalOmegaClient
from .errors import (
    SequenceBatchError,
    ConfigurationError,
    JobClientError,
    SubmissionError,
    NotReadyError,
    PersistenceError,
    ResultWriteError,
)

__version__ = "0.1.0"

__all__ = [
    "Orchestrator",
    "JobRequest",
    "SequencePayload",
    "SequenceKind",
    "PendingEntry",
    "JobStatus",
    "JobOutcome",
    "BatchSummary",
    "ReviewSummary",
    "ReconciliationLoop",
    "WorkerPool",
    "PendingJobLedger",
    "ResultSink",
    "FileResultSink",
    "BaseJobClient",
    "ClustalOmegaClient",
    "SequenceBatchError",
    "ConfigurationError",
    "JobClientError",
    "SubmissionError",
    "NotReadyError",
    "PersistenceError",
    "ResultWriteError",
    "create_orchestrator",
]


def create_orchestrator(output_directory: str, client: Optional[BaseJobClient] = None) -> Orchestrator:
    """Create an orchestrator instance.

    Args:
        output_directory: Directory holding one subdirectory per group
        client: Job client to use; defaults to a ClustalOmegaClient

    Returns:
        Configured Orchestrator instance, which owns the client
    """
    base = Path(output_directory)

    return Orchestrator(
        client=client or ClustalOmegaClient(),
        ledger=PendingJobLedger(base),
        result_sink=FileResultSink(base),
    )
