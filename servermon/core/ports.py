"""
Core ports - Interfaces the application layer depends on.

Adapters under ``servermon.adapters`` implement these; the use case only ever
sees the abstract types, so probing, persistence and delivery can be swapped
(e.g. the deterministic probe for dry runs, a mock notifier in tests).
"""

from abc import ABC, abstractmethod

from servermon.core.entities import AlertBatch, Endpoint, ProbeResult, Recipient, RunRecord


class ProbeStrategy(ABC):  # pylint: disable=too-few-public-methods
    """Decides whether an endpoint is alive."""

    @abstractmethod
    def probe(self, endpoint: Endpoint) -> ProbeResult:
        """
        Probe an endpoint and return its liveness verdict.

        Implementations must not raise for transport failures; those are
        reported through ``ProbeResult.error``.
        """


class RunStateStore(ABC):
    """Loads and saves the RunRecord of the previous pass."""

    @abstractmethod
    def load(self) -> RunRecord:
        """
        Load the persisted RunRecord.

        Returns an empty record stamped "now" when nothing was persisted yet.

        Raises:
            StateError: If persisted state exists but cannot be parsed
        """

    @abstractmethod
    def save(self, record: RunRecord) -> None:
        """Replace the persisted RunRecord with ``record``."""


class Notifier(ABC):  # pylint: disable=too-few-public-methods
    """Delivers an alert batch to one recipient."""

    @abstractmethod
    def send(self, recipient: Recipient, batch: AlertBatch) -> None:
        """
        Deliver ``batch`` to ``recipient``.

        Raises:
            Exception: Any delivery failure; the caller aggregates them
        """
