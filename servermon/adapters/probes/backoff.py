"""
Backoff probe adapter - Live HTTP liveness check with fixed-interval retry.

An endpoint is up when a GET to its target answers 200. Anything else is
retried up to ``max_attempts`` times, sleeping ``retry_interval`` seconds
between attempts. Despite the name the interval is constant.
"""

import logging
import time
from typing import Callable, Optional

import requests  # type: ignore
import urllib3  # type: ignore

from servermon.core.entities import Endpoint, ProbeResult
from servermon.core.ports import ProbeStrategy

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_INTERVAL = 60.0
DEFAULT_TIMEOUT = 30.0

# urllib3 raises some URL errors (e.g. LocationParseError for bad IDNA
# hostnames) without wrapping them in a RequestException
TRANSPORT_ERRORS = (
    requests.exceptions.RequestException,
    urllib3.exceptions.HTTPError,
)


class AdapterBackoffProbe(ProbeStrategy):  # pylint: disable=too-few-public-methods
    """
    Adapter that implements ProbeStrategy with live HTTP requests.

    The final verdict after exhausting attempts carries the last transport
    error's description, or the last non-200 status code as a string.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the probe.

        Args:
            max_attempts: Total number of attempts, including the first
            retry_interval: Seconds to sleep between attempts
            timeout: Per-attempt request timeout in seconds (None disables it)
            session: Optional requests session (defaults to the module API)
            sleep: Sleep function, injectable so tests can skip the delay

        Raises:
            ValueError: If max_attempts < 1 or retry_interval < 0
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if retry_interval < 0:
            raise ValueError(f"retry_interval must be >= 0, got {retry_interval}")

        self.max_attempts = max_attempts
        self.retry_interval = retry_interval
        self.timeout = timeout
        self.session = session
        self._sleep = sleep

    def probe(self, endpoint: Endpoint) -> ProbeResult:
        """
        Probe an endpoint with retries.

        Args:
            endpoint: Endpoint to probe

        Returns:
            ProbeResult: up on the first 200, otherwise down after all attempts
        """
        target = endpoint.target
        last_error: Optional[str] = None
        last_status_code: Optional[int] = None

        for attempt in range(1, self.max_attempts + 1):
            logger.info(
                "Fetching server status: endpoint_id=%s attempt=%d/%d target=%s",
                endpoint.id,
                attempt,
                self.max_attempts,
                target,
            )
            try:
                response = self._get(target)
            except TRANSPORT_ERRORS as e:
                # No response exists on this attempt, so never touch status
                last_error = str(e)
                logger.warning(
                    "Request failed: endpoint_id=%s attempt=%d/%d error=%s",
                    endpoint.id,
                    attempt,
                    self.max_attempts,
                    e,
                )
            else:
                last_error = None
                last_status_code = response.status_code
                if response.status_code == 200:
                    return ProbeResult.up(endpoint)
                logger.warning(
                    "Non 200 status code: endpoint_id=%s attempt=%d/%d status_code=%d",
                    endpoint.id,
                    attempt,
                    self.max_attempts,
                    response.status_code,
                )

            if attempt < self.max_attempts:
                self._sleep(self.retry_interval)

        if last_error is not None:
            logger.error(
                "Endpoint down after %d attempts: endpoint_id=%s error=%s",
                self.max_attempts,
                endpoint.id,
                last_error,
            )
            return ProbeResult.down(endpoint, last_error)

        logger.error(
            "Endpoint down after %d attempts: endpoint_id=%s status_code=%s",
            self.max_attempts,
            endpoint.id,
            last_status_code,
        )
        return ProbeResult.down(endpoint, str(last_status_code))

    def _get(self, target: str) -> requests.Response:
        getter = self.session.get if self.session is not None else requests.get
        return getter(target, timeout=self.timeout)
