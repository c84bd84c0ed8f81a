"""
Check Pass Use Case - Runs one health-check pass over every endpoint.

Sequence:
1. Load the previous RunRecord
2. Probe every endpoint in configured order, keeping the down results
3. Diff the down results against the previous RunRecord
4. Persist the new RunRecord (before notifying, so a delivery problem never
   loses run history)
5. Notify every enabled recipient when the alert batch is non-empty,
   aggregating delivery failures
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Sequence

from servermon.application.diff import classify_new, classify_recovered
from servermon.core.entities import (
    AlertBatch,
    Endpoint,
    ProbeResult,
    Recipient,
    RunRecord,
    enabled_recipients,
    utc_now,
)
from servermon.core.exceptions import NotificationError
from servermon.core.ports import Notifier, ProbeStrategy, RunStateStore

logger = logging.getLogger(__name__)


@dataclass
class PassReport:
    """Outcome of one pass."""

    record: RunRecord
    alerts: AlertBatch
    checked: int
    notification_failures: Dict[str, str] = field(default_factory=dict)


class CheckPassUseCase:  # pylint: disable=too-few-public-methods
    """
    Use case that probes endpoints and alerts on new failures only.

    Dependencies are injected through the ports so the same orchestration
    runs with live or mock probes, file or in-memory state, SMTP or stdout.
    """

    def __init__(
        self,
        probe: ProbeStrategy,
        store: RunStateStore,
        notifier: Notifier,
        recipients: Sequence[Recipient] = (),
        workers: int = 1,
        notify_recovered: bool = False,
        persist: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the use case with its dependencies.

        Args:
            probe: Implementation of ProbeStrategy port
            store: Implementation of RunStateStore port
            notifier: Implementation of Notifier port
            recipients: Everyone who may be notified (disabled ones are skipped)
            workers: Number of endpoints probed concurrently (1 = sequential)
            notify_recovered: Also report endpoints that came back up
            persist: Save the new RunRecord (False for dry runs)
            clock: Source of pass timestamps
        """
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")

        self.probe = probe
        self.store = store
        self.notifier = notifier
        self.recipients = list(recipients)
        self.workers = workers
        self.notify_recovered = notify_recovered
        self.persist = persist
        self._clock = clock

    def execute(self, endpoints: Sequence[Endpoint]) -> PassReport:
        """
        Execute one pass.

        Args:
            endpoints: Endpoints to probe, in configured order

        Returns:
            PassReport: Saved record, alert batch and delivery failures

        Raises:
            StateError: If the previous state cannot be loaded (nothing is saved)
            NotificationError: If any recipient could not be notified; the
                new RunRecord has already been saved at that point
        """
        previous = self.store.load()

        run_time_start = self._clock()
        results = self._probe_all(endpoints)
        run_time_end = self._clock()

        down = [status for status in results if not status.is_up]
        logger.info(
            "Server check complete: checked=%d down=%d duration=%s",
            len(results),
            len(down),
            run_time_end - run_time_start,
        )

        new_down = classify_new(previous, down)
        for status in new_down:
            logger.info("Should be sent: endpoint_id=%s error=%s", status.id, status.error)

        recovered: List[ProbeResult] = []
        if self.notify_recovered:
            recovered = classify_recovered(
                previous, results, [endpoint.id for endpoint in endpoints]
            )
            for status in recovered:
                logger.info("Recovered: endpoint_id=%s", status.id)

        alerts = AlertBatch(down=new_down, recovered=recovered)
        record = RunRecord(down, run_time_start, run_time_end)

        if self.persist:
            self.store.save(record)
        else:
            logger.info("Dry-run mode: state not saved")

        report = PassReport(record=record, alerts=alerts, checked=len(results))

        if alerts:
            report.notification_failures = self._notify(alerts)
        else:
            logger.info("No new failures, nothing to send")

        if report.notification_failures:
            raise NotificationError(report.notification_failures)

        return report

    def _probe_all(self, endpoints: Sequence[Endpoint]) -> List[ProbeResult]:
        total = len(endpoints)

        def check(indexed):
            index, endpoint = indexed
            logger.info(
                "Checking server status: index=%d total=%d url=%s server_id=%s",
                index,
                total,
                endpoint.url,
                endpoint.id,
            )
            status = self.probe.probe(endpoint)
            if status.is_up:
                logger.info("Server is okay: server_id=%s", endpoint.id)
            else:
                logger.error(
                    "Target server has an error: server_id=%s error=%s",
                    endpoint.id,
                    status.error,
                )
            return status

        if self.workers == 1:
            return [check(item) for item in enumerate(endpoints)]

        # map() yields results in submission order
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            return list(executor.map(check, enumerate(endpoints)))

    def _notify(self, alerts: AlertBatch) -> Dict[str, str]:
        failures: Dict[str, str] = {}
        recipients = enabled_recipients(self.recipients)
        if not recipients:
            logger.warning("Alerts pending but no enabled recipients configured")
            return failures

        for recipient in recipients:
            try:
                self.notifier.send(recipient, alerts)
            except Exception as e:  # pylint: disable=broad-except
                logger.error(
                    "Failed to notify %s: %s", recipient.email, e, exc_info=True
                )
                failures[recipient.email] = str(e)
        return failures
