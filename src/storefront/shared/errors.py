"""Business-rule exceptions raised by the storefront.

They extend Protean's exceptions so that handlers and the HTTP layer can
treat them like any other validation or operation failure.
"""

from protean.exceptions import InvalidOperationError, ValidationError


class InsufficientStock(ValidationError):
    """Requested quantity exceeds the stock on hand."""


class OutOfStock(InsufficientStock):
    """One or more cart lines cannot be fulfilled at checkout time."""

    def __init__(self, unavailable_items):
        self.unavailable_items = unavailable_items
        super().__init__({"cart": ["Some items are out of stock"]})


class InvalidTransition(InvalidOperationError):
    """The order cannot move to the requested status from its current one."""
