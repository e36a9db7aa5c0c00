"""Payment gateway port.

Checkout only needs a charge call whose result can be handed back to the
client and later attached to the order as ``paymentResult``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of a charge attempt, in the shape the storefront client expects."""

    id: str
    status: str  # "completed" or "failed"
    amount: float
    currency: str
    payment_method: str
    order_id: str | None
    transaction_id: str | None
    created_at: datetime
    failure_reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "amount": self.amount,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "order_id": self.order_id,
            "transaction_id": self.transaction_id,
            "created_at": self.created_at.isoformat(),
        }


class PaymentGateway(ABC):
    @abstractmethod
    def process_payment(
        self,
        amount: float,
        payment_method: str,
        order_id: str | None = None,
        currency: str = "usd",
    ) -> PaymentResult:
        """Charge ``amount`` using ``payment_method``."""
        ...
