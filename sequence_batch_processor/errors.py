"""
Error classes for sequence batch processing.

The hierarchy mirrors how each failure is handled:
- ConfigurationError: Reported before any work starts
- JobClientError: External service failure (SubmissionError is retried by the pool)
- PersistenceError: Ledger state could not be read or written, fatal for the operation
- ResultWriteError: An output artifact could not be written, the entry stays pending
"""


class SequenceBatchError(Exception):
    """Base exception for sequence batch processing."""

    pass


class ConfigurationError(SequenceBatchError):
    """Invalid configuration (parallelism out of range, missing paths)."""

    pass


class JobClientError(SequenceBatchError):
    """The external job service failed or returned something unusable."""

    pass


class SubmissionError(JobClientError):
    """
    A single submission attempt failed.

    Covers both rejected input (4xx responses) and transport failures.
    The worker pool retries the request up to its attempt bound.
    """

    pass


class NotReadyError(JobClientError):
    """A result was requested for a job that has not finished."""

    pass


class PersistenceError(SequenceBatchError):
    """The pending-job ledger could not be read or written."""

    pass


class ResultWriteError(SequenceBatchError):
    """A result or error marker could not be written to its output file."""

    pass
