"""Generic repository contracts.

``ILookupRepository[T]`` covers the read side other modules expose to the
order lifecycle (customers, employees).  ``IRepository[T]`` adds listing and
soft deletion for aggregates the service layer writes.
Service code depends on these abstractions, never on the ORM.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, Protocol, TypeVar

from django.db import models

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class Queryable(Protocol[T_co]):
    def filter(self, **kwargs: Any) -> models.QuerySet: ...


class ILookupRepository(ABC, Generic[T]):
    """Primary-key look-up; ``None`` when the row is missing or the id is malformed."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key."""


class IRepository(ILookupRepository[T]):
    """Read/write contract for an aggregate root such as ``Order``."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Queryable[T]:
        """List entities with optional filters."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Soft-delete an entity; ``False`` when nothing matched."""
