"""Base enumerator interface.

All request sources must implement the BaseEnumerator interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.models import JobRequest, SequenceKind


@dataclass
class EnumeratorResult:
    """Result from enumerator execution.

    Attributes:
        success: Whether enumeration succeeded
        requests: Job requests to submit
        skipped: Output targets left out because their result already exists
        error: Error message if enumeration failed
        metadata: Additional metadata about the enumeration
    """

    success: bool
    requests: List[JobRequest] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_count(self) -> int:
        return len(self.requests)


def parse_kind(value: Any) -> SequenceKind:
    """Parse a sequence kind from configuration.

    Raises:
        ValueError: If the value is not a known kind
    """
    if isinstance(value, SequenceKind):
        return value
    try:
        return SequenceKind(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(k.value for k in SequenceKind)
        raise ValueError(f"Unknown sequence kind: {value!r}. Expected one of: {choices}")


class BaseEnumerator(ABC):
    """Abstract base class for job request sources.

    Enumerators are responsible for:
    1. Accepting configuration from the CLI
    2. Reading their input source
    3. Returning one JobRequest per unit of input

    They sit upstream of the orchestrator and are the only place that
    knows how input files are laid out.
    """

    enumerator_type: str = "base"

    description: str = "Base enumerator"

    @abstractmethod
    def __init__(self, config: Dict[str, Any]):
        """Initialize enumerator with configuration.

        Args:
            config: Configuration dictionary. Structure depends on enumerator type.
        """
        pass

    @abstractmethod
    def enumerate(self) -> EnumeratorResult:
        """Enumerate all requests.

        Returns:
            EnumeratorResult with the job requests
        """
        pass

    @abstractmethod
    def validate_config(self) -> Optional[str]:
        """Validate the configuration.

        Returns:
            Error message if invalid, None if valid
        """
        pass
