"""CSV manifest enumerator.

Reads job requests from a CSV manifest, one row per request. Lets an
upstream tool hand over requests for several groups in one file.
"""

import csv
from pathlib import Path
from typing import Any, Dict, Optional

from .base import BaseEnumerator, EnumeratorResult, parse_kind
from .registry import register_enumerator
from ..core.models import JobRequest, SequencePayload, validate_group_key


REQUIRED_COLUMNS = ("group_key", "output_target", "kind")


@register_enumerator
class CsvEnumerator(BaseEnumerator):
    """Enumerate job requests from a CSV manifest.

    Configuration:
        file_path: Path to the manifest
        delimiter: CSV delimiter (default: ",")
        encoding: File encoding (default: "utf-8")
        output_directory: If set, rows whose output already exists under
            <output_directory>/<group_key>/ are skipped

    Columns:
        group_key, output_target, kind, and either sequence (inline text) or
        sequence_file (path relative to the manifest)
    """

    enumerator_type = "csv"
    description = "Enumerate job requests from a CSV manifest"

    def __init__(self, config: Dict[str, Any]):
        """Initialize CSV enumerator.

        Args:
            config: Configuration with file_path
        """
        self.file_path = Path(config.get("file_path", ""))
        self.delimiter = config.get("delimiter", ",")
        self.encoding = config.get("encoding", "utf-8")
        self.output_directory = config.get("output_directory")

    def validate_config(self) -> Optional[str]:
        """Validate configuration."""
        if not str(self.file_path) or str(self.file_path) == ".":
            return "file_path is required"

        if not self.file_path.exists():
            return f"CSV file not found: {self.file_path}"

        if not self.file_path.is_file():
            return f"Path is not a file: {self.file_path}"

        if self.output_directory and not Path(self.output_directory).is_dir():
            return f"Output directory does not exist: {self.output_directory}"

        return None

    def enumerate(self) -> EnumeratorResult:
        """Read the manifest and build one request per row."""
        error = self.validate_config()
        if error:
            return EnumeratorResult(success=False, error=error)

        try:
            requests = []
            skipped = []
            groups = set()

            with open(self.file_path, "r", encoding=self.encoding, newline="") as f:
                reader = csv.DictReader(f, delimiter=self.delimiter)
                columns = reader.fieldnames or []

                missing = [c for c in REQUIRED_COLUMNS if c not in columns]
                if missing:
                    return EnumeratorResult(success=False, error=f"Manifest is missing columns: {', '.join(missing)}")
                if "sequence" not in columns and "sequence_file" not in columns:
                    return EnumeratorResult(
                        success=False, error="Manifest needs a 'sequence' or 'sequence_file' column"
                    )

                # header is line 1
                for line_number, row in enumerate(reader, start=2):
                    group_key = (row.get("group_key") or "").strip()
                    output_target = (row.get("output_target") or "").strip()

                    try:
                        validate_group_key(group_key)
                        if self._already_written(group_key, output_target):
                            skipped.append(output_target)
                            continue

                        payload = SequencePayload(sequence=self._read_sequence(row), kind=parse_kind(row.get("kind")))
                        request = JobRequest(group_key=group_key, output_target=output_target, payload=payload)
                    except ValueError as e:
                        return EnumeratorResult(success=False, error=f"Invalid manifest row {line_number}: {e}")

                    requests.append(request)
                    groups.add(group_key)

            return EnumeratorResult(
                success=True,
                requests=requests,
                skipped=skipped,
                metadata={"file_path": str(self.file_path), "groups": sorted(groups), "row_count": len(requests)},
            )

        except csv.Error as e:
            return EnumeratorResult(success=False, error=f"CSV parsing error: {str(e)}")
        except (OSError, UnicodeDecodeError) as e:
            return EnumeratorResult(success=False, error=f"CSV enumeration failed: {str(e)}")

    def _read_sequence(self, row: Dict[str, Any]) -> str:
        sequence = (row.get("sequence") or "").strip()
        if sequence:
            return sequence

        sequence_file = (row.get("sequence_file") or "").strip()
        if not sequence_file:
            raise ValueError("row has neither sequence nor sequence_file")

        return (self.file_path.parent / sequence_file).read_text(encoding=self.encoding)

    def _already_written(self, group_key: str, output_target: str) -> bool:
        if not self.output_directory or not output_target:
            return False

        group_dir = (Path(self.output_directory) / group_key).resolve()
        path = (group_dir / output_target).resolve()
        if group_dir not in path.parents:
            raise ValueError(f"output_target escapes the group directory: {output_target!r}")
        return path.exists()
