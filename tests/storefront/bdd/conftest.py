"""Shared BDD fixtures and step definitions for checkout scenarios."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from storefront.cart.cart import Cart
from storefront.cart.items import AddToCart
from storefront.catalogue.product import Product
from storefront.order.order import Order


@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def catalogue():
    """Product name to id, for the products created by Given steps."""
    return {}


@pytest.fixture()
def checkout():
    """Holds the placed order id or the captured error."""
    return {"order_id": None, "exc": None}


def _product(catalogue, name):
    return current_domain.repository_for(Product).get(catalogue[name])


def _order(checkout):
    return current_domain.repository_for(Order).get(checkout["order_id"])


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced at {price:f} with {stock:d} in stock'))
def product_in_catalogue(create_product, catalogue, name, price, stock):
    catalogue[name] = create_product(name=name, price=price, stock=stock)


@given(parsers.cfparse('the customer\'s cart holds {quantity:d} "{name}"'))
def cart_holds(catalogue, customer_id, quantity, name):
    current_domain.process(
        AddToCart(user_id=customer_id, product_id=catalogue[name], quantity=quantity),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(checkout, status):
    assert _order(checkout).order_status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def payment_status_is(checkout, status):
    assert _order(checkout).payment_status == status


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def product_stock_is(catalogue, name, stock):
    assert _product(catalogue, name).stock == stock


@then("the customer's cart is empty")
def cart_is_empty(customer_id):
    assert current_domain.repository_for(Cart).for_user(customer_id).is_empty
