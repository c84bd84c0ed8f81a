"""
Alert rendering - Formats an AlertBatch as human-readable text.
"""

from typing import List

from servermon.core.entities import AlertBatch, ProbeResult


def render_subject(base_subject: str, batch: AlertBatch) -> str:
    """
    Build the subject line for an alert.

    Args:
        base_subject: Configured subject for down alerts
        batch: Alert batch being sent

    Returns:
        Subject line
    """
    if batch.down:
        return base_subject
    return "Servers have recovered"


def render_alert(batch: AlertBatch) -> str:
    """
    Format an alert batch as plain text.

    Args:
        batch: Alert batch with newly down and (optionally) recovered endpoints

    Returns:
        Formatted text body
    """
    lines: List[str] = []

    if batch.down:
        lines.append(f"The following {len(batch.down)} server(s) have gone down:")
        lines.append("")
        for status in batch.down:
            lines.extend(_format_status(status, "✗"))

    if batch.recovered:
        if lines:
            lines.append("")
        lines.append(f"The following {len(batch.recovered)} server(s) are back up:")
        lines.append("")
        for status in batch.recovered:
            lines.extend(_format_status(status, "✓", show_error=False))

    if not lines:
        return "No details available"

    lines.append("")
    lines.append("---")
    lines.append("This is an automated message from servermon.")
    return "\n".join(lines)


def _format_status(status: ProbeResult, icon: str, show_error: bool = True) -> List[str]:
    lines = [f"  {icon} [{status.id}] {status.url}"]
    if show_error and status.error:
        lines.append(f"      Error: {status.error}")
    lines.append(f"      Checked at: {status.date.isoformat()}")
    return lines
