"""
Stdout notifier adapter - Prints alerts instead of sending them.

Used for dry runs and when no SMTP host is configured.
"""

from servermon.adapters.notifiers.render import render_alert, render_subject
from servermon.core.entities import AlertBatch, Recipient
from servermon.core.ports import Notifier


class AdapterStdoutNotifier(Notifier):  # pylint: disable=too-few-public-methods
    """Adapter that implements Notifier by printing to stdout."""

    def __init__(self, subject: str = "IMPORTANT: Servers have gone down"):
        self.subject = subject

    def send(self, recipient: Recipient, batch: AlertBatch) -> None:
        print()
        print("=" * 80)
        print(f"To: {recipient.name} <{recipient.email}>")
        print(f"Subject: {render_subject(self.subject, batch)}")
        print("=" * 80)
        print(render_alert(batch))
        print("=" * 80)
        print()
