"""Error taxonomy for the picking workflow.

- DeviceUnavailable: the camera could not be acquired. Recoverable; the step
  shows a retry control instead of failing the workflow.
- InvalidState: an operation arrived in the wrong order (capture while not
  streaming, a transition from the wrong stage).
- QuantityOutOfRange: a bulk quantity outside ``1..pending``. The ledger is
  left untouched.
"""

from protean.exceptions import InvalidStateError, ValidationError


class DeviceUnavailable(Exception):
    """The platform denied or lacks the requested imaging capability."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidState(InvalidStateError):
    """An operation was attempted in a state that does not allow it."""


class QuantityOutOfRange(ValidationError):
    """A bulk-pick quantity is outside the entry's pending bound."""

    def __init__(self, sku: str, quantity: int, pending: int):
        super().__init__({"quantity": [f"Quantity {quantity} for {sku} must be between 1 and {pending}"]})
        self.sku = sku
        self.quantity = quantity
        self.pending = pending
