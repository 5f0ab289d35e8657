"""File-based pending-job ledger.

Provides durable storage for the set of submitted jobs whose results have
not been written yet, one ledger per group:

    <base_directory>/<group_key>/PendingJobs.txt

Each line is "output_target,job_id". Line order carries no meaning and a
missing file means the group has no pending jobs.
"""

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, List, Set

from ..config import PENDING_JOBS_FILENAME
from ..core.models import PendingEntry, validate_group_key
from ..errors import PersistenceError


logger = logging.getLogger(__name__)


class PendingJobLedger:
    """Crash-consistent, per-group set of PendingEntry values."""

    def __init__(self, base_directory: Path, filename: str = PENDING_JOBS_FILENAME):
        """Initialize ledger.

        Args:
            base_directory: Output directory holding one subdirectory per group
            filename: Name of the ledger file inside each group directory
        """
        self.base_directory = Path(base_directory)
        self.filename = filename

        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def group_directory(self, group_key: str) -> Path:
        """Directory holding the ledger and outputs of a group."""
        validate_group_key(group_key)
        return self.base_directory / group_key

    def ledger_path(self, group_key: str) -> Path:
        return self.group_directory(group_key) / self.filename

    @contextmanager
    def locked(self, group_key: str):
        """Exclusive scope for one group's ledger.

        Re-entrant, so load/save/clear can be called while it is held.
        """
        with self._locks_guard:
            lock = self._locks.setdefault(group_key, threading.RLock())
        with lock:
            yield

    def load(self, group_key: str) -> Set[PendingEntry]:
        """Read the pending entries of a group.

        Returns:
            The entries, or an empty set if the group has no ledger file

        Raises:
            PersistenceError: If the file cannot be read or holds a malformed line
        """
        path = self.ledger_path(group_key)

        with self.locked(group_key):
            if not path.exists():
                return set()

            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise PersistenceError(f"Failed to read ledger {path}: {e}") from e

        entries = set()
        for line_number, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            entries.add(self._parse_line(line, path, line_number))

        return entries

    def save(self, group_key: str, entries: Iterable[PendingEntry]):
        """Overwrite the ledger of a group with exactly these entries.

        The file is written to a temporary sibling, fsynced and renamed over
        the old one, so readers never see a partial set. An empty set clears
        the ledger.

        Raises:
            PersistenceError: If the file cannot be written
        """
        entries = set(entries)
        if not entries:
            self.clear(group_key)
            return

        path = self.ledger_path(group_key)
        content = "".join(f"{self._format_line(entry)}\n" for entry in sorted(entries))

        with self.locked(group_key):
            tmp_name = None
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    mode="w",
                    encoding="utf-8",
                    dir=path.parent,
                    prefix=f".{self.filename}.",
                    suffix=".tmp",
                    delete=False,
                ) as tmp:
                    tmp_name = tmp.name
                    tmp.write(content)
                    tmp.flush()
                    os.fsync(tmp.fileno())
                os.replace(tmp_name, path)
                tmp_name = None
            except OSError as e:
                raise PersistenceError(f"Failed to write ledger {path}: {e}") from e
            finally:
                if tmp_name is not None:
                    try:
                        os.unlink(tmp_name)
                    except OSError:
                        logger.warning(f"Could not remove temporary ledger file {tmp_name}")

        logger.debug(f"Saved {len(entries)} pending entries for group {group_key}")

    def clear(self, group_key: str):
        """Remove the ledger file of a group, if any.

        Raises:
            PersistenceError: If an existing file cannot be removed
        """
        path = self.ledger_path(group_key)

        with self.locked(group_key):
            try:
                path.unlink()
            except FileNotFoundError:
                return
            except OSError as e:
                raise PersistenceError(f"Failed to remove ledger {path}: {e}") from e

        logger.debug(f"Cleared ledger for group {group_key}")

    def list_groups(self) -> List[str]:
        """Groups that currently have a ledger file, sorted by name."""
        if not self.base_directory.is_dir():
            return []

        try:
            return sorted(
                child.name
                for child in self.base_directory.iterdir()
                if child.is_dir() and (child / self.filename).is_file()
            )
        except OSError as e:
            raise PersistenceError(f"Failed to list groups in {self.base_directory}: {e}") from e

    @staticmethod
    def _format_line(entry: PendingEntry) -> str:
        return f"{entry.output_target},{entry.job_id}"

    @staticmethod
    def _parse_line(line: str, path: Path, line_number: int) -> PendingEntry:
        parts = line.split(",")
        if len(parts) != 2:
            raise PersistenceError(f"Malformed ledger line {line_number} in {path}: {line!r}")

        try:
            return PendingEntry(output_target=parts[0], job_id=parts[1])
        except ValueError as e:
            raise PersistenceError(f"Malformed ledger line {line_number} in {path}: {e}") from e
