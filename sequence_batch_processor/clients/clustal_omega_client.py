"""Clustal Omega job client.

Talks to the EBI Job Dispatcher REST service for Clustal Omega:
- POST {base}/run submits a multiple sequence alignment job
- GET {base}/status/{job_id} reports the job status as plain text
- GET {base}/result/{job_id}/{result_type} returns the alignment
"""

import logging
import threading
from typing import Optional

import requests

from .base import BaseJobClient
from ..config import (
    DEFAULT_CLUSTAL_BASE_URL,
    DEFAULT_CLUSTAL_OUTPUT_FORMAT,
    DEFAULT_CLUSTAL_RESULT_TYPE,
    DEFAULT_CONTACT_EMAIL,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_JOB_TITLE,
    MAX_PARALLELISM,
)
from ..core.models import JobStatus, SequenceKind
from ..errors import JobClientError, NotReadyError, SubmissionError


logger = logging.getLogger(__name__)

WIRE_STATUS_MAP = {
    "QUEUED": JobStatus.PENDING,
    "PENDING": JobStatus.PENDING,
    "RUNNING": JobStatus.RUNNING,
    "FINISHED": JobStatus.FINISHED,
    "ERROR": JobStatus.ERRORED,
    "FAILURE": JobStatus.ERRORED,
    "NOT_FOUND": JobStatus.ERRORED,
}


class ClustalOmegaClient(BaseJobClient):
    """Job client for the EBI Clustal Omega REST API.

    Owns one requests.Session whose connection pool is sized for the maximum
    worker parallelism. The session is shared by all worker threads and is
    released by close().
    """

    def __init__(
        self,
        base_url: str = DEFAULT_CLUSTAL_BASE_URL,
        email: str = DEFAULT_CONTACT_EMAIL,
        title: str = DEFAULT_JOB_TITLE,
        output_format: str = DEFAULT_CLUSTAL_OUTPUT_FORMAT,
        result_type: str = DEFAULT_CLUSTAL_RESULT_TYPE,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize Clustal Omega client.

        Args:
            base_url: Service root, without trailing slash
            email: Contact address sent with each submission
            title: Job title sent with each submission
            output_format: Alignment output format (outfmt)
            result_type: Result type identifier fetched for finished jobs
            timeout: Per-request timeout in seconds
            session: Optional pre-built session (mainly for tests)
        """
        self.base_url = base_url.rstrip("/")
        self.email = email
        self.title = title
        self.output_format = output_format
        self.result_type = result_type
        self.timeout = timeout
        self.session = session or self._create_session()
        self._closed = False
        self._lock = threading.Lock()

    def _create_session(self) -> requests.Session:
        session = requests.Session()

        adapter = requests.adapters.HTTPAdapter(
            pool_connections=1,
            pool_maxsize=MAX_PARALLELISM,
            max_retries=0,
        )
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers.update({"Accept": "text/plain"})

        return session

    def get_name(self) -> str:
        return "clustalo"

    def submit(self, sequence: str, kind: SequenceKind) -> str:
        form = {
            "sequence": sequence,
            "email": self.email,
            "title": self.title,
            "outfmt": self.output_format,
            "stype": kind.value,
        }

        try:
            response = self.session.post(f"{self.base_url}/run", data=form, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise SubmissionError(f"Clustal Omega submission failed: {e}") from e

        if not response.ok:
            raise SubmissionError(
                f"Clustal Omega rejected submission (HTTP {response.status_code}): {response.text.strip()[:200]}"
            )

        job_id = response.text.strip()
        if not job_id:
            raise SubmissionError("Clustal Omega returned an empty job id")
        if "," in job_id or any(char.isspace() for char in job_id):
            raise SubmissionError(f"Clustal Omega returned a malformed job id: {job_id[:200]!r}")

        logger.debug(f"Clustal Omega alignment job id - {job_id}")
        return job_id

    def poll_status(self, job_id: str) -> JobStatus:
        try:
            response = self.session.get(f"{self.base_url}/status/{job_id}", timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise JobClientError(f"Status check failed for job {job_id}: {e}") from e

        wire_status = response.text.strip().upper()
        status = WIRE_STATUS_MAP.get(wire_status)
        if status is None:
            raise JobClientError(f"Unknown status {wire_status!r} for job {job_id}")

        return status

    def fetch_result(self, job_id: str) -> str:
        url = f"{self.base_url}/result/{job_id}/{self.result_type}"
        try:
            response = self.session.get(url, headers={"Accept": "application/octet-stream"}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise JobClientError(f"Result fetch failed for job {job_id}: {e}") from e

        if response.status_code in (400, 404):
            raise NotReadyError(f"Result not available for job {job_id} (HTTP {response.status_code})")

        if not response.ok:
            raise JobClientError(f"Result fetch failed for job {job_id} (HTTP {response.status_code})")

        return response.text

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.session.close()
        logger.debug("Clustal Omega HTTP session closed")
