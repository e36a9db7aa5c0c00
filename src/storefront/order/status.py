"""Admin status updates: command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.locks import stock_locks
from storefront.order.cancellation import restock_cancelled
from storefront.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    """Move an order along its lifecycle, e.g. to shipped with a tracking number."""

    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    note = String(max_length=500)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)


@storefront.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.order_status

        order.transition_to(
            command.status,
            note=command.note,
            tracking_number=command.tracking_number,
            carrier=command.carrier,
        )
        if order.order_status == OrderStatus.CANCELLED.value:
            restock_cancelled(order)
        repo.add(order)

        logger.info(
            "Order status updated",
            order_id=str(order.id),
            order_number=order.order_number,
            previous_status=previous,
            new_status=order.order_status,
        )


def update_order_status(order_id, status, note=None, tracking_number=None, carrier=None):
    """Apply a status change, locking the order's products when it may restock them."""
    order = current_domain.repository_for(Order).get(order_id)
    product_ids = []
    if status == OrderStatus.CANCELLED.value:
        product_ids = [line["product_id"] for line in order.catalogued_lines]

    with stock_locks.hold(product_ids):
        current_domain.process(
            UpdateOrderStatus(
                order_id=str(order_id),
                status=status,
                note=note,
                tracking_number=tracking_number,
                carrier=carrier,
            ),
            asynchronous=False,
        )
