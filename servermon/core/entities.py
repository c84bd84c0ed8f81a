"""
Core entities - Domain objects shared by every layer.

Endpoints come from configuration, ProbeResults are produced once per probe,
and RunRecord is the "last known state" persisted between passes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set, Tuple, Union

EndpointId = Union[int, str]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Endpoint:
    """
    A network endpoint to probe.

    The probed target is ``scheme + url`` (e.g. ``"https://" + "example.com"``).
    """

    id: EndpointId
    label: str
    url: str
    scheme: str = "https://"

    @property
    def target(self) -> str:
        return f"{self.scheme}{self.url}"


@dataclass(frozen=True)
class ProbeResult:
    """Liveness verdict for a single endpoint (a.k.a. server status)."""

    id: EndpointId
    is_up: bool
    error: str
    url: str
    date: datetime

    @classmethod
    def up(cls, endpoint: Endpoint, date: Optional[datetime] = None) -> "ProbeResult":
        return cls(endpoint.id, True, "", endpoint.url, date or utc_now())

    @classmethod
    def down(
        cls, endpoint: Endpoint, error: str, date: Optional[datetime] = None
    ) -> "ProbeResult":
        return cls(endpoint.id, False, error, endpoint.url, date or utc_now())


@dataclass(frozen=True)
class RunRecord:
    """
    Down-set and timing of one pass.

    Invariant: ``down_servers`` holds at most one entry per endpoint ID.

    Raises:
        ValueError: If two entries share an endpoint ID
    """

    down_servers: Tuple[ProbeResult, ...]
    run_time_start: datetime
    run_time_end: datetime

    def __post_init__(self):
        # Accept any iterable but store an immutable tuple
        object.__setattr__(self, "down_servers", tuple(self.down_servers))
        seen: Set[EndpointId] = set()
        for status in self.down_servers:
            if status.id in seen:
                raise ValueError(f"Duplicate endpoint ID in down-list: {status.id!r}")
            seen.add(status.id)

    @classmethod
    def empty(cls, now: Optional[datetime] = None) -> "RunRecord":
        """Build the bootstrap record used when no state was persisted yet."""
        now = now or utc_now()
        return cls((), now, now)

    def down_ids(self) -> Set[EndpointId]:
        return {status.id for status in self.down_servers}


@dataclass(frozen=True)
class AlertBatch:
    """
    Results worth notifying about for one pass.

    ``down`` holds newly failed endpoints. ``recovered`` holds the previous
    pass's down entries for endpoints that are up again; it stays empty unless
    recovery notices are enabled.
    """

    down: List[ProbeResult] = field(default_factory=list)
    recovered: List[ProbeResult] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.down or self.recovered)


@dataclass(frozen=True)
class Recipient:
    """Someone who receives alert emails."""

    name: str
    email: str
    enabled: bool = True


@dataclass(frozen=True)
class SmtpSettings:
    """Outbound mail server settings."""

    hostname: str = ""
    port: int = 587
    username: str = ""
    password: str = ""
    sender: str = "monitor@localhost"
    subject: str = "IMPORTANT: Servers have gone down"
    starttls: bool = True


def enabled_recipients(recipients: Iterable[Recipient]) -> List[Recipient]:
    return [recipient for recipient in recipients if recipient.enabled]
