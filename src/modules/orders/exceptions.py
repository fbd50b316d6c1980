"""Order domain exceptions.

Raised by the aggregate and the Service Layer when business rules are
violated.  The API layer (Views) catches the category bases
(``OrderValidationError``, ``NotFound``, ``Conflict``, ``Forbidden``) and
translates them into HTTP responses.  Every message is a sentence that
can be shown to the user as-is.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class OrderValidationError(Exception):
    """Malformed input; nothing was written."""


class NotFound(Exception):
    """A referenced order, actor or catalog entry does not exist."""


class Conflict(Exception):
    """A guard of the order aggregate was violated."""


class Forbidden(Exception):
    """A status-transition precondition was violated."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class InvalidTrackingCodeFormat(OrderValidationError):
    """The tracking code does not match ``PD-######-####-##``."""


class TrackingCodeChecksumMismatch(OrderValidationError):
    """The tracking code is well formed but its checksum does not match."""


class OrderItemValidationError(OrderValidationError):
    """An order line item failed validation."""


class InvalidHistoryDescription(OrderValidationError):
    """A ledger description is not allowed or malformed."""


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class OrderNotFound(NotFound):
    """The requested order does not exist."""


class CustomerNotFound(NotFound):
    """The customer referenced by the order does not exist."""


class CustomerAddressNotFound(NotFound):
    """The address does not exist or does not belong to the customer."""


class ProductNotFound(NotFound):
    """A product referenced by an order item does not exist or is inactive."""


class EmployeeNotFound(NotFound):
    """The employee selected as assignee does not exist."""


# ---------------------------------------------------------------------------
# Guard violations
# ---------------------------------------------------------------------------


class OrderAlreadyAssigned(Conflict):
    pass


class OrderNotAssignable(Conflict):
    pass


class OrderNotAssigned(Conflict):
    pass


class OrderNotUnassignable(Conflict):
    pass


class OrderNotSchedulable(Conflict):
    pass


class OrderNotDispatched(Conflict):
    pass


class OrderNotCancellable(Conflict):
    pass


class EmployeeNotDriver(Conflict):
    """Only active drivers can be assigned to an order."""


class StatusTransitionForbidden(Forbidden):
    """The requested status change is not allowed from the current state."""


class InactiveCustomer(Forbidden):
    """The customer is inactive and cannot place orders (RN-CLI-003)."""


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


class NoStatusHistory(Exception):
    """The order has no ledger entry (creation always seeds one)."""


class TrackingCodeGenerationError(Exception):
    """No unused tracking code was found within the retry budget."""


class DeadlineExceeded(Exception):
    """The caller-supplied deadline expired before the write."""


class ImmutableHistoryError(Exception):
    """Raised on any attempt to edit or remove a ledger entry."""
