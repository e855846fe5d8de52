"""
SRT Tool Notification

Delivery of the run report. Any object with a ``send(subject, body)``
method can be passed to a replication run as its notifier.
"""

from srt.core.utils import safe_print


class ConsoleNotifier:
    """Prints the report to stdout."""

    def send(self, subject: str, body: str) -> None:
        safe_print("")
        safe_print(subject)
        safe_print("=" * len(subject))
        safe_print(body)
