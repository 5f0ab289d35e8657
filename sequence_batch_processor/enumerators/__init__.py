"""Job request enumerators for batch submission.

Enumerators turn an input source into the list of job requests to submit.
Each enumerator takes configuration parameters and returns JobRequest objects.

Built-in enumerators:
- FileEnumerator: One request per sequence file in a directory
- CsvEnumerator: One request per row of a CSV manifest

Usage:
    from sequence_batch_processor.enumerators import create_enumerator

    enumerator = create_enumerator("file", {
        "base_directory": "/path/to/IGH",
        "pattern": "*.fasta",
        "kind": "protein",
    })
    result = enumerator.enumerate()
"""

from .base import BaseEnumerator, EnumeratorResult, parse_kind
from .registry import create_enumerator, register_enumerator, describe_enumerators
from .file_enumerator import FileEnumerator
from .csv_enumerator import CsvEnumerator

__all__ = [
    "BaseEnumerator",
    "EnumeratorResult",
    "parse_kind",
    "create_enumerator",
    "register_enumerator",
    "describe_enumerators",
    "FileEnumerator",
    "CsvEnumerator",
]
