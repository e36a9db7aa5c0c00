"""Repository for the Order aggregate."""

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.repository(part_of=Order)
class OrderRepository:
    def find_by_number(self, order_number: str) -> Order | None:
        orders = self._dao.query.filter(order_number=order_number).all().items
        return orders[0] if orders else None

    def page_for_user(self, user_id, page: int = 1, limit: int = 10):
        """Return ``(orders, total)`` for one page of a user's orders, newest first."""
        return self._page(self._dao.query.filter(user_id=str(user_id)), page, limit)

    def page_all(self, status: str | None = None, payment_status: str | None = None, page: int = 1, limit: int = 20):
        """Return ``(orders, total)`` across all users, optionally filtered."""
        filters = {}
        if status:
            filters["order_status"] = status
        if payment_status:
            filters["payment_status"] = payment_status
        query = self._dao.query.filter(**filters) if filters else self._dao.query
        return self._page(query, page, limit)

    def _page(self, query, page, limit):
        page = max(page, 1)
        results = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        return results.items, results.total
