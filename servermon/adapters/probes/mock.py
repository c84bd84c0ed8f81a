"""
Mock probe adapter - Deterministic verdicts for dry runs and tests.

No network I/O happens here; the verdict depends only on the endpoint ID.
"""

import logging
from typing import Iterable

from servermon.core.entities import Endpoint, EndpointId, ProbeResult
from servermon.core.ports import ProbeStrategy

logger = logging.getLogger(__name__)


class AdapterMockProbe(ProbeStrategy):  # pylint: disable=too-few-public-methods
    """Reports endpoints in ``down_ids`` as down with a fixed error, all others up."""

    def __init__(self, down_ids: Iterable[EndpointId] = (), error: str = "404"):
        self.down_ids = frozenset(down_ids)
        self.error = error

    def probe(self, endpoint: Endpoint) -> ProbeResult:
        if endpoint.id in self.down_ids:
            logger.debug("Mock probe: endpoint_id=%s is down", endpoint.id)
            return ProbeResult.down(endpoint, self.error)
        return ProbeResult.up(endpoint)
