"""Fake payment gateway.

Succeeds at random with the configured success rate (90% by default). Tests
pin the outcome with ``configure(should_succeed=...)`` and inspect ``calls``,
which holds the most recent ``MAX_RECORDED_CALLS`` charges.
"""

import random
from datetime import UTC, datetime
from uuid import uuid4

from storefront.payments.port import PaymentGateway, PaymentResult

MAX_RECORDED_CALLS = 100


class FakeGateway(PaymentGateway):
    def __init__(self, success_rate: float = 0.9, rng: random.Random | None = None) -> None:
        self.success_rate = success_rate
        self.should_succeed: bool | None = None
        self.failure_reason: str = "Payment processing failed"
        self.calls: list[dict] = []
        self._rng = rng or random.Random()

    def configure(self, should_succeed: bool | None, failure_reason: str = "Payment processing failed") -> None:
        """Pin the outcome of every charge. ``None`` goes back to random outcomes."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _succeeds(self) -> bool:
        if self.should_succeed is not None:
            return self.should_succeed
        return self._rng.random() < self.success_rate

    def process_payment(
        self,
        amount: float,
        payment_method: str,
        order_id: str | None = None,
        currency: str = "usd",
    ) -> PaymentResult:
        self.calls.append(
            {
                "method": "process_payment",
                "amount": amount,
                "payment_method": payment_method,
                "order_id": order_id,
                "currency": currency,
            }
        )
        # Only the most recent charges are kept
        del self.calls[:-MAX_RECORDED_CALLS]

        succeeded = self._succeeds()
        return PaymentResult(
            id=f"pay_{uuid4().hex[:16]}",
            status="completed" if succeeded else "failed",
            amount=amount,
            currency=currency,
            payment_method=payment_method,
            order_id=order_id,
            transaction_id=f"txn_{uuid4().hex[:12]}" if succeeded else None,
            created_at=datetime.now(UTC),
            failure_reason=None if succeeded else self.failure_reason,
        )
