"""Base job client interface for sequence batch processing.

Defines the abstract interface that every external job service adapter must follow.
"""

from abc import ABC, abstractmethod

from ..core.models import JobStatus, ResultBlob, SequenceKind


class BaseJobClient(ABC):
    """Abstract base class for remote job-submission APIs.

    Clients are responsible for:
    1. Submitting a sequence payload and returning the service's job id
    2. Reporting job status without side effects
    3. Fetching the result of a finished job (repeatable)
    4. Owning and releasing the underlying connection resource

    A client instance is shared by all worker threads, so implementations
    must be safe to call concurrently.
    """

    @abstractmethod
    def submit(self, sequence: str, kind: SequenceKind) -> str:
        """Submit a job.

        Args:
            sequence: Sequence text to analyse
            kind: Sequence kind, selects the submission variant

        Returns:
            Job id assigned by the service

        Raises:
            SubmissionError: On rejected input or transport failure
        """
        pass

    @abstractmethod
    def poll_status(self, job_id: str) -> JobStatus:
        """Get the current status of a job.

        Raises:
            JobClientError: If the status could not be retrieved
        """
        pass

    @abstractmethod
    def fetch_result(self, job_id: str) -> ResultBlob:
        """Fetch the result of a finished job.

        Raises:
            NotReadyError: If the job has not finished
            JobClientError: If the result could not be retrieved
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Get the name of the external service."""
        pass

    def close(self):
        """Release the connection resource. Safe to call more than once."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
