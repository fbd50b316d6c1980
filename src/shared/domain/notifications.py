"""Notification channel interface.

Publishing is fire-and-forget: callers never wait on delivery and a
failed publish must not undo the write that triggered it.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol


class INotificationPublisher(Protocol):
    """Publisher for topic-addressed notifications."""

    def publish(self, topic: str, payload: Dict[str, Any]) -> None: ...
