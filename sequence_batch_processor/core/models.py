"""Core data models for sequence batch processing.

Defines the fundamental abstractions:
- JobRequest: One sequence payload to submit, keyed by group and output target
- PendingEntry: A submitted job whose result has not been written yet
- JobOutcome: Transient result of a submission or a finished job
- BatchSummary / ReviewSummary: Per-group reports for the operator
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


ResultBlob = Union[str, bytes]

_FORBIDDEN_FIELD_CHARS = (",", "\n", "\r")


def _validate_field(name: str, value: str):
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")
    for char in _FORBIDDEN_FIELD_CHARS:
        if char in value:
            raise ValueError(f"{name} must not contain {char!r}: {value!r}")
    if value != value.strip():
        raise ValueError(f"{name} must not start or end with whitespace: {value!r}")


def validate_group_key(group_key: str):
    """Check that a group key is usable as a single directory name.

    Raises:
        ValueError: If the key is empty, a relative marker or contains a path separator
    """
    if not isinstance(group_key, str) or not group_key.strip():
        raise ValueError("group_key must be a non-empty string")
    if group_key in (".", "..") or "/" in group_key or "\\" in group_key:
        raise ValueError(f"group_key must be a single path component: {group_key!r}")


class SequenceKind(Enum):
    """Kind of sequence; selects the submission variant."""

    PROTEIN = "protein"
    DNA = "dna"
    RNA = "rna"


class JobStatus(Enum):
    """Status of a job on the external service."""

    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"
    ERRORED = "errored"


class OutcomeKind(Enum):
    """Discriminator for JobOutcome."""

    SUBMITTED = "submitted"
    FAILED = "failed"
    FINISHED = "finished"


@dataclass(frozen=True)
class SequencePayload:
    """Opaque sequence text plus the kind used to pick a submission variant."""

    sequence: str
    kind: SequenceKind

    def __post_init__(self):
        if not self.sequence:
            raise ValueError("sequence must not be empty")
        if not isinstance(self.kind, SequenceKind):
            raise ValueError(f"kind must be a SequenceKind, got {self.kind!r}")


@dataclass(frozen=True)
class JobRequest:
    """A single unit of input to submit to the external service.

    Created by an upstream enumerator, consumed once by the worker pool.
    """

    group_key: str
    output_target: str
    payload: SequencePayload

    def __post_init__(self):
        validate_group_key(self.group_key)
        _validate_field("output_target", self.output_target)


@dataclass(frozen=True, order=True)
class PendingEntry:
    """A submitted job whose terminal outcome has not been observed and written.

    Identified by the (output_target, job_id) pair, so adding the same pair
    to a set twice is a no-op.
    """

    output_target: str
    job_id: str

    def __post_init__(self):
        _validate_field("output_target", self.output_target)
        _validate_field("job_id", self.job_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"output_target": self.output_target, "job_id": self.job_id}


@dataclass(frozen=True)
class JobOutcome:
    """Transient outcome: Submitted(job_id), Failed(cause) or Finished(result).

    Never persisted; drives ledger mutation and result writes.
    """

    kind: OutcomeKind
    job_id: Optional[str] = None
    cause: Optional[str] = None
    result: Optional[ResultBlob] = None

    @classmethod
    def submitted(cls, job_id: str) -> "JobOutcome":
        return cls(kind=OutcomeKind.SUBMITTED, job_id=job_id)

    @classmethod
    def failed(cls, cause: str) -> "JobOutcome":
        return cls(kind=OutcomeKind.FAILED, cause=cause)

    @classmethod
    def finished(cls, result: ResultBlob) -> "JobOutcome":
        return cls(kind=OutcomeKind.FINISHED, result=result)


@dataclass
class SubmissionResult:
    """Outcome of one request after the worker pool's retry loop."""

    request: JobRequest
    outcome: JobOutcome
    attempts: int = 0

    @property
    def success(self) -> bool:
        return self.outcome.kind == OutcomeKind.SUBMITTED

    @property
    def entry(self) -> Optional[PendingEntry]:
        """Pending entry produced by a successful submission, else None."""
        if not self.success:
            return None
        return PendingEntry(output_target=self.request.output_target, job_id=self.outcome.job_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "group_key": self.request.group_key,
            "output_target": self.request.output_target,
            "status": self.outcome.kind.value,
            "job_id": self.outcome.job_id,
            "error": self.outcome.cause,
            "attempts": self.attempts,
        }


@dataclass
class BatchResult:
    """All submission results of one worker pool run, in completion order."""

    results: List[SubmissionResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def submitted(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.submitted

    @property
    def entries(self) -> List[PendingEntry]:
        return [r.entry for r in self.results if r.success]

    @property
    def failures(self) -> List[SubmissionResult]:
        return [r for r in self.results if not r.success]


@dataclass
class BatchSummary:
    """Report of one submit-new-batch run for a group."""

    group_key: str
    submitted: int = 0
    failed: int = 0
    total: int = 0
    pending_total: int = 0
    failed_targets: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "group_key": self.group_key,
            "submitted": self.submitted,
            "failed": self.failed,
            "total": self.total,
            "pending_total": self.pending_total,
            "failed_targets": list(self.failed_targets),
        }


@dataclass
class ReviewSummary:
    """Report of one reconciliation pass over a group's ledger.

    Attributes:
        group_key: Group that was reviewed
        total: Entries in the ledger at the start of the pass
        resolved: Entries whose result was written
        errored: Entries the external service reported as permanently failed
        write_failures: Finished entries whose result could not be written
        poll_failures: Entries whose status or result could not be retrieved
        remaining_entries: Entries still pending after the pass
    """

    group_key: str
    total: int = 0
    resolved: int = 0
    errored: int = 0
    write_failures: int = 0
    poll_failures: int = 0
    remaining_entries: List[PendingEntry] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return len(self.remaining_entries)

    @property
    def all_complete(self) -> bool:
        return not self.remaining_entries

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "group_key": self.group_key,
            "total": self.total,
            "resolved": self.resolved,
            "errored": self.errored,
            "write_failures": self.write_failures,
            "poll_failures": self.poll_failures,
            "remaining": self.remaining,
            "all_complete": self.all_complete,
            "remaining_entries": [e.to_dict() for e in sorted(self.remaining_entries)],
        }
