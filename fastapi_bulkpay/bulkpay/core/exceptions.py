from __future__ import annotations


class PaymentNotFoundError(LookupError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(f"Bulk payment not found: {payment_id}")
        self.payment_id = payment_id


class InvalidTransitionError(ValueError):
    """approve/reject attempted on a payment that is no longer pending approval."""

    def __init__(self, payment_id: str, current_status: str, action: str) -> None:
        super().__init__(
            f"Cannot {action} bulk payment {payment_id}: status is {current_status}"
        )
        self.payment_id = payment_id
        self.current_status = current_status
        self.action = action


class StalePaymentError(InvalidTransitionError):
    """Another actor changed the payment between read and update."""


class BatchNotReadyError(ValueError):
    pass


class BatchSubmittedError(ValueError):
    """The recipient batch was already frozen into a bulk payment."""
