"""Tasks assíncronas do módulo de pedidos."""

import structlog
from celery import shared_task

logger = structlog.get_logger(__name__)


@shared_task(name="orders.publish_notification", ignore_result=True)
def publish_order_notification(topic: str, payload: dict) -> dict:
    """Entrega a notificação ao canal externo (hoje: log estruturado)."""
    logger.info("notification.delivered", topic=topic, **payload)
    return {"topic": topic, "payload": payload}
