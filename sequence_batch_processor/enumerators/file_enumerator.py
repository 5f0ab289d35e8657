"""File-based enumerator.

Turns every sequence file in a directory into one job request. This is the
usual source when an upstream tool has already split sequences into files.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from .base import BaseEnumerator, EnumeratorResult, parse_kind
from .registry import register_enumerator
from ..config import DEFAULT_OUTPUT_SUFFIX
from ..core.models import JobRequest, SequencePayload


@register_enumerator
class FileEnumerator(BaseEnumerator):
    """Enumerate sequence files using a glob pattern.

    Configuration:
        base_directory: Directory holding the sequence files
        pattern: Glob pattern (default: "*")
        group_key: Group for all requests (default: name of base_directory)
        kind: Sequence kind, "protein", "dna" or "rna" (default: "protein")
        output_suffix: Appended to the file stem to name the output target
        output_directory: If set, files whose output already exists under
            <output_directory>/<group_key>/ are skipped
        include_hidden: Whether to include hidden files (default: False)

    Each file "IGHV3-30.fasta" becomes a request with output target
    "IGHV3-30-alignment.txt" and the file's text as payload.
    """

    enumerator_type = "file"
    description = "Enumerate sequence files from a directory"

    def __init__(self, config: Dict[str, Any]):
        """Initialize file enumerator.

        Args:
            config: Configuration with base_directory and optional pattern
        """
        self.base_directory = Path(config.get("base_directory", "."))
        self.pattern = config.get("pattern") or "*"
        self.group_key = config.get("group_key")
        self.kind = config.get("kind", "protein")
        self.output_suffix = config.get("output_suffix") or DEFAULT_OUTPUT_SUFFIX
        self.output_directory = config.get("output_directory")
        self.include_hidden = config.get("include_hidden", False)

    def validate_config(self) -> Optional[str]:
        """Validate configuration."""
        if not self.base_directory.exists():
            return f"Base directory does not exist: {self.base_directory}"

        if not self.base_directory.is_dir():
            return f"Base directory is not a directory: {self.base_directory}"

        try:
            parse_kind(self.kind)
        except ValueError as e:
            return str(e)

        if self.output_directory and not Path(self.output_directory).is_dir():
            return f"Output directory does not exist: {self.output_directory}"

        return None

    def enumerate(self) -> EnumeratorResult:
        """Build one request per matching file."""
        error = self.validate_config()
        if error:
            return EnumeratorResult(success=False, error=error)

        base_resolved = self.base_directory.resolve()
        group_key = self.group_key or base_resolved.name
        kind = parse_kind(self.kind)

        existing_dir = Path(self.output_directory) / group_key if self.output_directory else None

        try:
            requests = []
            skipped = []

            for file_path in sorted(base_resolved.glob(self.pattern)):
                if not file_path.is_file():
                    continue

                if not self.include_hidden and file_path.name.startswith("."):
                    continue

                output_target = f"{file_path.stem}{self.output_suffix}"
                if existing_dir is not None and (existing_dir / output_target).exists():
                    skipped.append(output_target)
                    continue

                sequence = file_path.read_text(encoding="utf-8")
                if not sequence.strip():
                    continue

                requests.append(
                    JobRequest(
                        group_key=group_key,
                        output_target=output_target,
                        payload=SequencePayload(sequence=sequence, kind=kind),
                    )
                )

            return EnumeratorResult(
                success=True,
                requests=requests,
                skipped=skipped,
                metadata={"base_directory": str(base_resolved), "pattern": self.pattern, "group_key": group_key},
            )

        except (OSError, UnicodeDecodeError, ValueError) as e:
            return EnumeratorResult(success=False, error=f"File enumeration failed: {str(e)}")
