"""
Notifiers module - Notifier implementations.

This module contains adapters that deliver an AlertBatch to a recipient
(SMTP email, stdout for dry runs).
"""

from servermon.adapters.notifiers.smtp import AdapterSmtpNotifier
from servermon.adapters.notifiers.stdout import AdapterStdoutNotifier

__all__ = [
    "AdapterSmtpNotifier",
    "AdapterStdoutNotifier",
]
