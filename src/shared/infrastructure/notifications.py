"""Notification publisher implementations."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

import structlog
from celery import Task
from kombu.exceptions import OperationalError

from shared.domain.notifications import INotificationPublisher

logger = structlog.get_logger(__name__)


class CeleryNotificationPublisher(INotificationPublisher):
    """Hands notifications to a Celery task.

    Broker outages are logged and dropped: a notification is never
    worth failing the request that produced it.
    """

    def __init__(self, task: Task) -> None:
        self._task = task

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        try:
            self._task.delay(topic, payload)
        except OperationalError as exc:
            logger.warning(
                "notification.publish_failed",
                topic=topic,
                payload=payload,
                error=str(exc),
            )
            return
        logger.info("notification.published", topic=topic, payload=payload)


class InMemoryNotificationPublisher(INotificationPublisher):
    """Keeps published notifications in a list (development and tests)."""

    def __init__(self) -> None:
        self.published: List[Tuple[str, Dict[str, Any]]] = []

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        self.published.append((topic, dict(payload)))


class NullNotificationPublisher(INotificationPublisher):
    """Discards every notification (notifications disabled)."""

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        logger.debug("notification.discarded", topic=topic)
