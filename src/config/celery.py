"""
Aplicação Celery do back-end de fulfillment.

Consome as notificações de pedidos publicadas após o commit
(``orders.publish_notification``).  DJANGO_SETTINGS_MODULE é definido
antes da instanciação, para que as settings com prefixo CELERY_ sejam lidas.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("fulfillment")
app.config_from_object("django.conf:settings", namespace="CELERY")

# Só o módulo de pedidos declara tasks
app.autodiscover_tasks(["modules.orders"])
