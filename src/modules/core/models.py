"""Base abstract models for the fulfillment back-end.

Provides:
- ``BaseModel``: UUIDv7 primary key + created_at / updated_at timestamps.
- ``SoftDeleteModel``: Extends BaseModel with deactivation via ``is_active``.
- ``LifecycleState``: tagged view of the active flag.

Design decisions:
- Records are never physically removed by application code.  ``delete()``
  flips ``is_active`` so audit trails that point at the row stay queryable.
- ``objects`` manager returns ALL records (unfiltered).  Use ``.alive()``
  explicitly to exclude deactivated rows.
- ``delete()`` returns Django-compatible ``(count, {label: count})`` tuple.
- ``save()`` guard ensures ``updated_at`` is included when ``update_fields``
  is specified (Django skips ``auto_now`` fields otherwise).
- Subclasses that need integer identifiers override ``id`` with a
  ``BigAutoField``.
"""

from __future__ import annotations

import enum

import uuid6
from django.db import models
from django.utils import timezone

# ---------------------------------------------------------------------------
# BaseModel
# ---------------------------------------------------------------------------


class BaseModel(models.Model):
    """Abstract base with UUIDv7 PK and timestamp bookkeeping."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Soft Delete infrastructure
# ---------------------------------------------------------------------------


class LifecycleState(enum.Enum):
    ACTIVE = "active"
    DEACTIVATED = "deactivated"


class SoftDeleteQuerySet(models.QuerySet):
    """QuerySet with soft-delete helpers."""

    def alive(self) -> SoftDeleteQuerySet:
        """Return only active records."""
        return self.filter(is_active=True)

    def dead(self) -> SoftDeleteQuerySet:
        """Return only deactivated records."""
        return self.filter(is_active=False)

    def delete(self) -> tuple[int, dict[str, int]]:
        """Bulk soft-delete: clears ``is_active`` and bumps ``updated_at``."""
        count = self.alive().update(is_active=False, updated_at=timezone.now())
        return count, {self.model._meta.label: count}

    def hard_delete(self) -> tuple[int, dict[str, int]]:
        """Permanently remove all records in the queryset."""
        return super().delete()


class SoftDeleteManager(models.Manager):
    """Manager that exposes ``.alive()`` / ``.dead()`` on the queryset."""

    def get_queryset(self) -> SoftDeleteQuerySet:
        return SoftDeleteQuerySet(self.model, using=self._db)

    def alive(self) -> SoftDeleteQuerySet:
        return self.get_queryset().alive()

    def dead(self) -> SoftDeleteQuerySet:
        return self.get_queryset().dead()


class SoftDeleteModel(BaseModel):
    """Abstract model deactivated through the ``is_active`` flag.

    - ``objects`` is **unfiltered** (returns all rows).
    - Use ``Model.objects.alive()`` to exclude deactivated rows.
    - ``delete()`` performs a soft-delete; ``hard_delete()`` removes physically.
    """

    is_active = models.BooleanField(default=True, db_index=True)

    objects = SoftDeleteManager()

    class Meta:
        abstract = True

    @property
    def lifecycle(self) -> LifecycleState:
        if self.is_active:
            return LifecycleState.ACTIVE
        return LifecycleState.DEACTIVATED

    @property
    def is_deleted(self) -> bool:
        return not self.is_active

    def delete(self, using=None, keep_parents=False) -> tuple[int, dict[str, int]]:
        """Soft-delete this instance (no-op if already deactivated)."""
        if not self.is_active:
            return 0, {}
        self.is_active = False
        self.save(update_fields=["is_active", "updated_at"])
        return 1, {self._meta.label: 1}

    def hard_delete(self, using=None, keep_parents=False) -> tuple[int, dict[str, int]]:
        """Permanently remove this record from the database."""
        return super().delete(using=using, keep_parents=keep_parents)

    def restore(self) -> None:
        """Reactivate a soft-deleted record. No-op if already active."""
        if self.is_active:
            return
        self.is_active = True
        self.save(update_fields=["is_active", "updated_at"])
