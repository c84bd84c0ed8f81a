"""
Diff engine - Decides which failures are new relative to the previous pass.

An endpoint already down in the previous RunRecord was alerted on then and is
not alerted again while it stays down.
"""

from typing import Iterable, List

from servermon.core.entities import EndpointId, ProbeResult, RunRecord


def classify_new(previous: RunRecord, current: Iterable[ProbeResult]) -> List[ProbeResult]:
    """
    Select the down results whose endpoint was not down in the previous pass.

    Args:
        previous: RunRecord persisted by the previous pass
        current: Results of this pass (up results are ignored)

    Returns:
        List[ProbeResult]: Alert-worthy results, in the order of ``current``
    """
    known_down = previous.down_ids()
    return [
        status
        for status in current
        if not status.is_up and status.id not in known_down
    ]


def classify_recovered(
    previous: RunRecord,
    current: Iterable[ProbeResult],
    probed_ids: Iterable[EndpointId],
) -> List[ProbeResult]:
    """
    Select previous down entries for endpoints that were probed and are up now.

    Endpoints missing from ``probed_ids`` (e.g. removed from configuration)
    are not reported as recovered.

    Args:
        previous: RunRecord persisted by the previous pass
        current: Results of this pass
        probed_ids: IDs of every endpoint probed this pass

    Returns:
        List[ProbeResult]: Previous down entries, in the previous record's order
    """
    probed = set(probed_ids)
    still_down = {status.id for status in current if not status.is_up}
    return [
        status
        for status in previous.down_servers
        if status.id in probed and status.id not in still_down
    ]
