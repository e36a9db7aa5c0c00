"""Payment gateway factory.

``get_gateway()`` returns a FakeGateway built from the settings unless a
test or the composition root installed another one with ``set_gateway()``.
"""

from storefront.config import get_settings
from storefront.payments.fake_gateway import FakeGateway
from storefront.payments.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeGateway(success_rate=get_settings().payment_success_rate)
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
