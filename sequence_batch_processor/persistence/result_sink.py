"""Result sinks for completed jobs.

A sink turns a finished job's result into an output artifact. Writes are
last-write-wins on the output target, so writing the same result twice is
harmless.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Tuple

from ..config import ERROR_DIRNAME, PENDING_JOBS_FILENAME
from ..core.models import ResultBlob, validate_group_key
from ..errors import ResultWriteError


logger = logging.getLogger(__name__)


class ResultSink(ABC):
    """Abstract destination for job results."""

    @abstractmethod
    def write(self, group_key: str, output_target: str, result: ResultBlob):
        """Durably write a result.

        Raises:
            ResultWriteError: If the result could not be written
        """
        pass

    @abstractmethod
    def write_error(self, group_key: str, output_target: str, detail: str):
        """Record that the job behind an output target failed on the service.

        Raises:
            ResultWriteError: If the marker could not be written
        """
        pass


class FileResultSink(ResultSink):
    """Writes results to <base_directory>/<group_key>/<output_target>.

    Error markers go to <base_directory>/<group_key>/Error/<output_target>.txt
    so the operator can see which targets need resubmission.
    """

    def __init__(
        self,
        base_directory: Path,
        error_dirname: str = ERROR_DIRNAME,
        reserved_names: Tuple[str, ...] = (PENDING_JOBS_FILENAME,),
    ):
        """Initialize file sink.

        Args:
            base_directory: Output directory holding one subdirectory per group
            error_dirname: Subdirectory of a group for error markers
            reserved_names: File names in the group directory a result must never replace
        """
        self.base_directory = Path(base_directory)
        self.error_dirname = error_dirname
        self.reserved_names = reserved_names

    def target_path(self, group_key: str, output_target: str) -> Path:
        """Resolve the output file for a target, refusing paths outside the group directory."""
        validate_group_key(group_key)
        group_dir = (self.base_directory / group_key).resolve()
        path = (group_dir / output_target).resolve()
        if group_dir not in path.parents:
            raise ResultWriteError(f"Output target escapes group directory: {output_target!r}")
        if path.parent == group_dir and path.name in self.reserved_names:
            raise ResultWriteError(f"Output target uses a reserved name: {output_target!r}")
        return path

    def write(self, group_key: str, output_target: str, result: ResultBlob):
        path = self.target_path(group_key, output_target)
        data = result.encode("utf-8") if isinstance(result, str) else result
        self._atomic_write(path, data)
        logger.info(f"Saved result to file - {path.name}")

    def write_error(self, group_key: str, output_target: str, detail: str):
        path = self.target_path(group_key, f"{self.error_dirname}/{output_target}.txt")
        self._atomic_write(path, f"{detail}\n".encode("utf-8"))
        logger.debug(f"Saved error marker - {path}")

    def _atomic_write(self, path: Path, data: bytes):
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise ResultWriteError(f"Failed to write {path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning(f"Could not remove temporary file {tmp_name}")
