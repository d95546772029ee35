"""
Notifier implementations.

Available implementations:
- LogNotifier: Logs contest events
"""

from .log_notifier import LogNotifier

__all__ = ["LogNotifier"]
