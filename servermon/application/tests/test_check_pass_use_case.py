"""
Tests for the Check Pass use case.

Tests the orchestration logic that coordinates probing, diffing,
persistence and notification.
"""

from datetime import datetime, timedelta, timezone
from itertools import count
from unittest.mock import Mock

import pytest

from servermon.adapters.probes.mock import AdapterMockProbe
from servermon.application.check_pass_use_case import CheckPassUseCase
from servermon.core.entities import Endpoint, ProbeResult, Recipient, RunRecord
from servermon.core.exceptions import NotificationError, StateError
from servermon.core.ports import RunStateStore

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class InMemoryStore(RunStateStore):
    """RunStateStore kept in memory."""

    def __init__(self, record=None):
        self.record = record
        self.saves = []

    def load(self):
        return self.record if self.record is not None else RunRecord.empty(T0)

    def save(self, record):
        self.saves.append(record)
        self.record = record


def ticking_clock():
    ticks = count()
    return lambda: T0 + timedelta(minutes=next(ticks))


class TestCheckPassUseCase:
    """Test suite for CheckPassUseCase."""

    @pytest.fixture
    def endpoints(self):
        """Two configured endpoints."""
        return [
            Endpoint(id=1, label="A", url="a.example"),
            Endpoint(id=2, label="B", url="b.example"),
        ]

    @pytest.fixture
    def notifier(self):
        """Create a mock notifier."""
        return Mock()

    @pytest.fixture
    def recipients(self):
        """One enabled and one disabled recipient."""
        return [
            Recipient(name="Ops", email="ops@example.com"),
            Recipient(name="Off", email="off@example.com", enabled=False),
        ]

    def _use_case(self, store, notifier, recipients, **kwargs):
        return CheckPassUseCase(
            probe=AdapterMockProbe(down_ids=[1]),
            store=store,
            notifier=notifier,
            recipients=recipients,
            clock=ticking_clock(),
            **kwargs,
        )

    def test_new_failure_is_alerted_and_persisted(self, endpoints, notifier, recipients):
        """Test empty previous state alerts on endpoint 1 and saves it."""
        store = InMemoryStore()

        report = self._use_case(store, notifier, recipients).execute(endpoints)

        assert [status.id for status in report.alerts.down] == [1]
        assert report.checked == 2
        assert [status.id for status in store.record.down_servers] == [1]
        notifier.send.assert_called_once()
        recipient, batch = notifier.send.call_args.args
        assert recipient.email == "ops@example.com"
        assert [status.id for status in batch.down] == [1]

    def test_known_failure_is_not_realerted(self, endpoints, notifier, recipients):
        """Test an endpoint already down last pass produces no alert."""
        previous = RunRecord(
            [ProbeResult(1, False, "404", "a.example", T0 - timedelta(hours=1))],
            T0 - timedelta(hours=1),
            T0 - timedelta(hours=1),
        )
        store = InMemoryStore(previous)

        report = self._use_case(store, notifier, recipients).execute(endpoints)

        assert report.alerts.down == []
        assert not report.alerts
        notifier.send.assert_not_called()
        assert [status.id for status in store.record.down_servers] == [1]
        assert store.record.run_time_start > previous.run_time_end

    def test_timestamps_bracket_probing(self, endpoints, notifier, recipients):
        """Test start/end are stamped around the iteration."""
        store = InMemoryStore()

        report = self._use_case(store, notifier, recipients).execute(endpoints)

        assert report.record.run_time_start == T0
        assert report.record.run_time_end == T0 + timedelta(minutes=1)

    def test_state_saved_before_notification(self, endpoints, recipients):
        """Test persistence happens before any delivery attempt."""
        store = InMemoryStore()

        def assert_saved(*_):
            assert len(store.saves) == 1

        notifier = Mock()
        notifier.send.side_effect = assert_saved

        self._use_case(store, notifier, recipients).execute(endpoints)
        notifier.send.assert_called_once()

    def test_delivery_failures_are_aggregated(self, endpoints):
        """Test every recipient is attempted and state is still saved."""
        store = InMemoryStore()
        notifier = Mock()
        notifier.send.side_effect = [OSError("smtp down"), None, OSError("refused")]
        recipients = [
            Recipient(name="A", email="a@example.com"),
            Recipient(name="B", email="b@example.com"),
            Recipient(name="C", email="c@example.com"),
        ]

        with pytest.raises(NotificationError) as exc_info:
            self._use_case(store, notifier, recipients).execute(endpoints)

        assert notifier.send.call_count == 3
        assert exc_info.value.failures == {
            "a@example.com": "smtp down",
            "c@example.com": "refused",
        }
        assert len(store.saves) == 1

    def test_malformed_state_aborts_before_probing(self, endpoints, notifier, recipients):
        """Test a state error stops the pass without saving."""
        store = Mock()
        store.load.side_effect = StateError("bad state")
        probe = Mock()

        use_case = CheckPassUseCase(probe, store, notifier, recipients)
        with pytest.raises(StateError):
            use_case.execute(endpoints)

        probe.probe.assert_not_called()
        store.save.assert_not_called()

    def test_recovered_endpoint_dropped_silently(self, endpoints, notifier, recipients):
        """Test recovered endpoints drop out of the persisted state silently."""
        previous = RunRecord([ProbeResult(2, False, "500", "b.example", T0)], T0, T0)
        store = InMemoryStore(previous)

        report = self._use_case(store, notifier, recipients).execute(endpoints)

        assert [status.id for status in store.record.down_servers] == [1]
        assert report.alerts.recovered == []

    def test_recovery_notice_when_enabled(self, endpoints, notifier, recipients):
        """Test recovered endpoints are reported when the policy is on."""
        previous = RunRecord([ProbeResult(2, False, "500", "b.example", T0)], T0, T0)
        store = InMemoryStore(previous)

        report = self._use_case(
            store, notifier, recipients, notify_recovered=True
        ).execute(endpoints)

        assert [status.id for status in report.alerts.recovered] == [2]
        assert [status.id for status in report.alerts.down] == [1]

    def test_dry_run_does_not_persist(self, endpoints, notifier, recipients):
        """Test persist=False leaves the store untouched."""
        store = InMemoryStore()

        self._use_case(store, notifier, recipients, persist=False).execute(endpoints)

        assert store.saves == []

    def test_concurrent_probing_keeps_order(self, notifier, recipients):
        """Test worker pools still collect results in configured order."""
        endpoints = [Endpoint(id=i, label=str(i), url=f"{i}.example") for i in range(10)]
        store = InMemoryStore()
        use_case = CheckPassUseCase(
            probe=AdapterMockProbe(down_ids=[7, 2, 5]),
            store=store,
            notifier=notifier,
            recipients=recipients,
            workers=4,
        )

        report = use_case.execute(endpoints)

        assert [status.id for status in report.record.down_servers] == [2, 5, 7]

    def test_invalid_workers(self, notifier):
        """Test workers below one is rejected."""
        with pytest.raises(ValueError):
            CheckPassUseCase(AdapterMockProbe(), InMemoryStore(), notifier, workers=0)
