"""
Probes module - ProbeStrategy implementations.

Two interchangeable strategies: a deterministic mock for dry runs and a live
HTTP probe with fixed-interval retry.
"""

from servermon.adapters.probes.backoff import AdapterBackoffProbe
from servermon.adapters.probes.mock import AdapterMockProbe

__all__ = [
    "AdapterBackoffProbe",
    "AdapterMockProbe",
]
