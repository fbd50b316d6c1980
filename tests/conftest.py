from __future__ import annotations

from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from modules.customers.models import Customer, CustomerAddress
from modules.customers.repositories.django_repository import CustomerDjangoRepository
from modules.employees.models import Employee, EmployeePosition
from modules.employees.repositories.django_repository import EmployeeDjangoRepository
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.notifications import OrderNotifier
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from shared.infrastructure.notifications import InMemoryNotificationPublisher


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------


@pytest.fixture()
def operator(django_user_model):
    return django_user_model.objects.create_user(
        username="operator", password="testpass123"
    )


@pytest.fixture()
def auth_client(operator):
    """APIClient with a force-authenticated operator."""
    client = APIClient()
    client.force_authenticate(user=operator)
    return client


@pytest.fixture()
def driver(django_user_model):
    user = django_user_model.objects.create_user(
        username="driver", password="testpass123"
    )
    return Employee.objects.create(
        user=user,
        employee_code="C001",
        name="Pedro",
        last_name="Soto",
        position=EmployeePosition.CHOFER,
    )


@pytest.fixture()
def second_driver():
    return Employee.objects.create(
        employee_code="C002",
        name="Marta",
        last_name="Vera",
        position=EmployeePosition.CHOFER,
    )


@pytest.fixture()
def cashier():
    return Employee.objects.create(
        employee_code="K001",
        name="Luis",
        last_name="Pino",
        position=EmployeePosition.CAJERO,
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer():
    return Customer.objects.create(
        business_name="Distribuidora Norte",
        representative_name="Ana Rojas",
        email="compras@norte.example",
    )


@pytest.fixture()
def address(customer):
    return CustomerAddress.objects.create(
        customer=customer,
        branch_name="Casa matriz",
        direction="Av. Matta 1200",
        city="Santiago",
        is_primary=True,
    )


@pytest.fixture()
def product_a():
    return Product.objects.create(name="Agua mineral 1.5L", sku="AGU-150")


@pytest.fixture()
def product_b():
    return Product.objects.create(name="Jugo de naranja 1L", sku="JUG-100")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


@pytest.fixture()
def publisher():
    return InMemoryNotificationPublisher()


@pytest.fixture()
def order_service(publisher):
    return OrderService(
        order_repository=OrderDjangoRepository(),
        customer_repository=CustomerDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        employee_repository=EmployeeDjangoRepository(),
        notifier=OrderNotifier(publisher),
    )


@pytest.fixture()
def make_order(order_service, operator, customer, address, product_a):
    """Factory creating orders through the service (ledger seeded)."""

    def _make(**overrides):
        dto = CreateOrderDTO(
            customer_id=overrides.pop("customer_id", customer.id),
            address_id=overrides.pop("address_id", address.id),
            items=overrides.pop(
                "items",
                [CreateOrderItemDTO(product_id=product_a.id, requested_quantity=3)],
            ),
            **overrides,
        )
        return order_service.create_order(dto, actor=operator)

    return _make


@pytest.fixture()
def tomorrow():
    return timezone.now() + timedelta(days=1)
