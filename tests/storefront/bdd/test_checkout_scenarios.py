"""BDD tests for checkout, stock reservation and cancellation."""

from protean import current_domain
from protean.exceptions import InvalidOperationError
from pytest_bdd import given, parsers, scenarios, then, when

from storefront.cart.cart import Cart
from storefront.catalogue.product import Product
from storefront.checkout.saga import place_order
from storefront.order.cancellation import cancel_order
from storefront.order.order import Order
from storefront.order.status import update_order_status
from storefront.shared.errors import InsufficientStock

scenarios("features/checkout.feature")


def _checkout_cart(customer_id, payment_method, shipping_address, payment_result=None):
    cart = current_domain.repository_for(Cart).for_user(customer_id)
    items = [
        {"product_id": str(item.product_id), "quantity": item.quantity, "selected_variant": item.selected_variant}
        for item in cart.items
    ]
    return place_order(
        user_id=customer_id,
        items=items,
        shipping_address=shipping_address,
        payment_method=payment_method,
        payment_result=payment_result,
        clear_cart=True,
    )


def _run_checkout(checkout, customer_id, shipping_address, payment_method, payment_result=None):
    try:
        result = _checkout_cart(customer_id, payment_method, shipping_address, payment_result)
        checkout["order_id"] = str(result.order.id)
    except InsufficientStock as exc:
        checkout["exc"] = exc


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('"{name}" has sold out'))
def sold_out(catalogue, name):
    repo = current_domain.repository_for(Product)
    product = repo.get(catalogue[name])
    product.stock = 0
    repo.add(product)


@given(parsers.cfparse('the customer checked out paying "{payment_method}"'))
def checked_out(checkout, customer_id, shipping_address, payment_method):
    _run_checkout(checkout, customer_id, shipping_address, payment_method)


@given(parsers.cfparse('the customer checked out paying "{payment_method}" with a completed payment'))
def checked_out_prepaid(checkout, customer_id, shipping_address, payment_method):
    _run_checkout(checkout, customer_id, shipping_address, payment_method, {"id": "pay_001", "status": "completed"})


@given("the order has been shipped")
def order_shipped(checkout):
    update_order_status(checkout["order_id"], "shipped", tracking_number="TRACK-001", carrier="FedEx")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer checks out paying "{payment_method}"'))
def checks_out(checkout, customer_id, shipping_address, payment_method):
    _run_checkout(checkout, customer_id, shipping_address, payment_method)


@when(parsers.cfparse('the customer checks out paying "{payment_method}" with a completed payment'))
def checks_out_prepaid(checkout, customer_id, shipping_address, payment_method):
    _run_checkout(checkout, customer_id, shipping_address, payment_method, {"id": "pay_001", "status": "completed"})


@when("the customer cancels the order")
def cancels_order(checkout):
    try:
        cancel_order(checkout["order_id"])
    except InvalidOperationError as exc:
        checkout["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order totals are items {items:f}, tax {tax:f}, shipping {shipping:f} and total {total:f}"))
def order_totals(checkout, items, tax, shipping, total):
    order = _order_of(checkout)
    assert order.items_price == items
    assert order.tax_price == tax
    assert order.shipping_price == shipping
    assert order.total_price == total


@then(parsers.cfparse("the shipping charge is {shipping:f}"))
def shipping_charge(checkout, shipping):
    assert _order_of(checkout).shipping_price == shipping


@then("the checkout is rejected for insufficient stock")
def rejected_for_stock(checkout):
    assert isinstance(checkout["exc"], InsufficientStock)


@then("no order was placed")
def no_order(checkout):
    assert checkout["order_id"] is None
    assert current_domain.repository_for(Order)._dao.query.all().total == 0


@then(parsers.cfparse('the last status history entry is "{status}"'))
def last_history_entry(checkout, status):
    history = sorted(_order_of(checkout).status_history, key=lambda entry: entry.timestamp)
    assert history[-1].status == status


@then("the cancellation is rejected")
def cancellation_rejected(checkout):
    assert isinstance(checkout["exc"], InvalidOperationError)


def _order_of(checkout):
    return current_domain.repository_for(Order).get(checkout["order_id"])
