"""Error taxonomy for a check pass."""

from typing import Dict


class ServermonError(Exception):
    """Base class for every fatal servermon error."""


class ConfigError(ServermonError, ValueError):
    """Configuration is missing or malformed."""


class StateError(ServermonError):
    """Persisted run state exists but cannot be trusted."""


class LockError(ServermonError):
    """Another pass already holds the instance lock."""


class NotificationError(ServermonError):
    """
    One or more recipients could not be notified.

    Attributes:
        failures: Mapping of recipient email -> error description
    """

    def __init__(self, failures: Dict[str, str]):
        self.failures = dict(failures)
        details = ", ".join(f"{email}: {error}" for email, error in self.failures.items())
        super().__init__(f"Failed to notify {len(self.failures)} recipient(s): {details}")
