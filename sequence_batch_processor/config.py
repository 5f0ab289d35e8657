"""Configuration defaults for sequence batch processing.

Values can be overridden with SBP_* environment variables where noted.
"""

import os

from .errors import ConfigurationError


MIN_PARALLELISM = 1
MAX_PARALLELISM = 10
DEFAULT_PARALLELISM = 1

MAX_SUBMISSION_ATTEMPTS = 3

PENDING_JOBS_FILENAME = "PendingJobs.txt"
ERROR_DIRNAME = "Error"

DEFAULT_HTTP_TIMEOUT = float(os.environ.get("SBP_HTTP_TIMEOUT", "60"))

DEFAULT_CLUSTAL_BASE_URL = os.environ.get(
    "SBP_CLUSTAL_BASE_URL", "https://www.ebi.ac.uk/Tools/services/rest/clustalo"
)
DEFAULT_CLUSTAL_OUTPUT_FORMAT = "clustal_num"
DEFAULT_CLUSTAL_RESULT_TYPE = "aln-clustal_num"
DEFAULT_JOB_TITLE = "sequence-batch"

# EBI asks for a contact address on every submission
DEFAULT_CONTACT_EMAIL = os.environ.get("SBP_CONTACT_EMAIL", "nobody@example.org")

DEFAULT_OUTPUT_SUFFIX = "-alignment.txt"


def validate_parallelism(value) -> int:
    """Validate a parallelism setting.

    Args:
        value: Requested number of parallel workers (int or numeric string)

    Returns:
        The parallelism as an int

    Raises:
        ConfigurationError: If the value is not an integer in [1, 10]
    """
    try:
        parallelism = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Parallelism must be an integer, got {value!r}")

    if isinstance(value, float) and value != parallelism:
        raise ConfigurationError(f"Parallelism must be an integer, got {value!r}")

    if parallelism < MIN_PARALLELISM or parallelism > MAX_PARALLELISM:
        raise ConfigurationError(
            f"Parallelism should be in range [{MIN_PARALLELISM}, {MAX_PARALLELISM}], got {parallelism}"
        )

    return parallelism


def default_parallelism() -> int:
    """Parallelism from SBP_PARALLELISM, falling back to DEFAULT_PARALLELISM."""
    return validate_parallelism(os.environ.get("SBP_PARALLELISM", DEFAULT_PARALLELISM))
