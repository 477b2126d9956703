"""
HTTP client for the remote scheduler service.

All calls are plain blocking requests on a shared session; the controller
runs them off the event loop. Listing and deleting raise TransportError,
saving raises ValidationError with the service's own message, and the
supplementary reads (groups, history) degrade quietly.
"""

import logging
from typing import List, Optional
from urllib.parse import quote

import requests

from quartz_console.config import DEFAULT_GROUP
from quartz_console.models import TriggerInfo, ExecutionLog, JobRequest

logger = logging.getLogger(__name__)

JOBS_PATH = "/api/jobs"
GROUPS_PATH = "/api/jobs/groups"
HISTORY_PATH = "/api/history"

DEFAULT_HISTORY_LIMIT = 20


class ConsoleError(Exception):
    """Base class for errors surfaced to the console user."""
    pass


class TransportError(ConsoleError):
    """Raised on connectivity failure or a non-2xx response with no usable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationError(ConsoleError):
    """Raised when the service rejects a job; carries its message verbatim."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SchedulerApiClient:
    """
    Client for the scheduler service's JSON API.

    Every operation maps to one request; nothing is cached here. The
    caller owns whatever view of remote state it keeps.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        default_group: str = DEFAULT_GROUP
    ):
        """
        Initialize the client.

        Args:
            base_url: Service root, e.g. http://localhost:8080
            session: Session to reuse (a new one is created if None)
            timeout: Per-request timeout in seconds (None = no explicit timeout)
            default_group: Group offered when the service can't list groups
        """
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout
        self.default_group = default_group

        logger.debug(f"Scheduler API client for {self.base_url}")

    def _url(self, path: str, *segments: str) -> str:
        url = f"{self.base_url}{path}"
        for segment in segments:
            url += "/" + quote(segment, safe='')
        return url

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Send a request, turning connectivity problems into TransportError.

        The response is returned whatever its status; callers decide what a
        non-2xx status means for their operation.
        """
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransportError(f"Could not reach scheduler at {self.base_url}: {e}") from e

    def list_jobs(self) -> List[TriggerInfo]:
        """
        List every job with its trigger.

        Returns:
            List of TriggerInfo objects

        Raises:
            TransportError: On connectivity failure, non-2xx status or bad JSON
        """
        url = self._url(JOBS_PATH)
        response = self._request("GET", url)

        if not response.ok:
            raise TransportError(
                f"Failed to fetch jobs (HTTP {response.status_code})",
                status_code=response.status_code
            )

        try:
            triggers = [TriggerInfo.from_json(item) for item in response.json()]
        except (ValueError, TypeError, AttributeError) as e:
            raise TransportError(f"Failed to fetch jobs: unreadable response ({e})") from e

        logger.debug(f"Fetched {len(triggers)} job(s)")
        return triggers

    def list_groups(self) -> List[str]:
        """
        List job groups, always including the default group.

        Never raises: if the service can't be asked, the default group
        alone is returned so a job can still be created.
        """
        fallback = [self.default_group]

        try:
            response = self._request("GET", self._url(GROUPS_PATH))
            if not response.ok:
                logger.warning(f"Failed to fetch job groups (HTTP {response.status_code})")
                return fallback
            groups = [str(g) for g in response.json()]
        except (ConsoleError, ValueError, TypeError) as e:
            logger.warning(f"Failed to fetch job groups: {e}")
            return fallback

        unique = list(dict.fromkeys(groups))
        if self.default_group not in unique:
            unique.append(self.default_group)
        return unique

    def create_or_update_job(self, job_request: JobRequest) -> str:
        """
        Create a job, or replace it if (group, name) already exists.

        Args:
            job_request: Payload to submit

        Returns:
            The service's confirmation text

        Raises:
            ValidationError: If the service rejects the job (message is its body)
            TransportError: On connectivity failure
        """
        logger.info(f"Scheduling job {job_request.job_group}/{job_request.job_name}")

        response = self._request("POST", self._url(JOBS_PATH), json=job_request.to_json())

        if not response.ok:
            message = response.text or "Failed to schedule job"
            logger.warning(
                f"Scheduler rejected {job_request.job_group}/{job_request.job_name}: {message}"
            )
            raise ValidationError(message)

        return response.text

    def delete_job(self, group: str, name: str):
        """
        Delete a job and its trigger. Confirmation is up to the caller.

        Raises:
            TransportError: On connectivity failure or non-2xx status
        """
        logger.info(f"Deleting job {group}/{name}")

        response = self._request("DELETE", self._url(JOBS_PATH, group, name))

        if not response.ok:
            raise TransportError(
                f"Failed to delete job {group}/{name} (HTTP {response.status_code})",
                status_code=response.status_code
            )

    def fetch_history(
        self,
        group: str,
        name: str,
        limit: int = DEFAULT_HISTORY_LIMIT
    ) -> List[ExecutionLog]:
        """
        Fetch the most recent executions of a job, newest first.

        History is supplementary, so failures are logged and an empty list
        is returned instead of raising.

        Args:
            group: Job group
            name: Job name
            limit: Maximum number of entries to return

        Returns:
            List of ExecutionLog objects

        Raises:
            ValueError: If limit is not positive
        """
        if limit <= 0:
            raise ValueError(f"History limit must be positive, got {limit}")

        try:
            response = self._request("GET", self._url(HISTORY_PATH, group, name))
            if not response.ok:
                logger.warning(
                    f"Failed to fetch history for {group}/{name} (HTTP {response.status_code})"
                )
                return []
            logs = [ExecutionLog.from_json(item) for item in response.json()]
        except (ConsoleError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to fetch history for {group}/{name}: {e}")
            return []

        return logs[:limit]

    def find_job(self, group: str, name: str) -> Optional[TriggerInfo]:
        """
        Look up a single job by key from a fresh listing.

        Returns:
            TriggerInfo or None if the service doesn't list it

        Raises:
            TransportError: If the listing fails
        """
        for trigger in self.list_jobs():
            if trigger.key == (group, name):
                return trigger
        return None

    def close(self):
        self.session.close()
