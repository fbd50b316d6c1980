"""Order domain constants.

Defines the status vocabulary of the ledger and the limits applied to
order input.  Transition legality is not a static table here: it depends
on assignment and current status together and lives on ``Order``.
"""

from django.conf import settings
from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDIENTE", "Pendiente"
    PREPARING = "PREPARANDO", "Preparando"
    DISPATCHED = "DESPACHADO", "Despachado"
    DELIVERED = "ENTREGADO", "Entregado"
    CANCELLED = "CANCELADO", "Cancelado"
    RETURNED = "DEVUELTO", "Devuelto"


# Only these ledger entries may carry a free-text description.
DESCRIBABLE_STATUSES: frozenset[str] = frozenset(
    {OrderStatus.CANCELLED, OrderStatus.RETURNED}
)

# Statuses after which update-status is refused.
LOCKED_STATUSES: frozenset[str] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)

TRACKING_CODE_PREFIX = "PD"

TRACKING_CODE_MAX_RETRIES: int = getattr(settings, "ORDER_TRACKING_CODE_MAX_RETRIES", 5)

URGENT_PENDING_DAYS: int = getattr(settings, "ORDER_URGENT_PENDING_DAYS", 3)

MAX_ITEM_QUANTITY = 10_000
MAX_ITEM_NOTES_LENGTH = 500
MAX_ORDER_NOTES_LENGTH = 1000
MAX_HISTORY_DESCRIPTION_LENGTH = 1000

NOTIFICATION_ORDER_UPDATED = "order:updated"
NOTIFICATION_ORDER_ASSIGNED = "order:assigned"
