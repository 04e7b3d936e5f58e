# storefront/services/order_service.py
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.access import ensure_access, order_access
from storefront.domain.errors import (
    Conflict,
    Forbidden,
    InsufficientStock,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    ShopError,
)
from storefront.domain.order_status import OrderStatus, assert_transition, is_payable
from storefront.repos.order_repo import OrderRepo
from storefront.services.cart_service import CartService
from storefront.services.catalog_service import CatalogService
from storefront.services.notification_service import NotificationService
from storefront.utils.logging import get_logger
from storefront.utils.settings import ORDERS_PAGE_LIMIT_MAX, RESTOCK_ON_DELETE

logger = get_logger(__name__)


def _line(item) -> Tuple[int, int]:
    if isinstance(item, dict):
        return item["product_id"], item["quantity"]
    if isinstance(item, tuple):
        return item
    return item.product_id, item.quantity


def order_view(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "status": order.status,
        "total": order.total,
        "shipping_address": order.shipping_address,
        "items": [
            {
                "product_id": i.product_id,
                "quantity": i.quantity,
                "unit_price": i.unit_price,
                "line_total": i.unit_price * i.quantity,
            }
            for i in order.items
        ],
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


class OrderService:
    """
    Order builder and order lifecycle.

    Every command is one database transaction: stock moves, order rows and
    the cart clear either all commit or all roll back. Stock is changed only
    through the catalog's conditional UPDATEs, so two checkouts racing for
    the last units cannot both win.
    """

    def __init__(
        self,
        db: Session,
        catalog: CatalogService | None = None,
        carts: CartService | None = None,
        notifications: NotificationService | None = None,
        restock_on_delete: bool = RESTOCK_ON_DELETE,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.catalog = catalog or CatalogService(db)
        self.carts = carts or CartService(db, catalog=self.catalog)
        self.notifications = notifications or NotificationService()
        self.restock_on_delete = restock_on_delete

    # =====================================================
    # COMMANDS
    # =====================================================
    def create_order(
        self,
        user_id: int,
        shipping_address: Dict[str, Any],
        items: Iterable[Any] | None = None,
    ) -> Dict[str, Any]:
        """
        Single entry point for checkout.

        items=None builds the order from the user's persisted cart and
        empties the cart in the same transaction; an explicit item list
        leaves the cart alone. Both paths share the validation below.

        1. reject an empty order
        2. aggregate quantity per product, then check every product exists,
           is active and has enough stock for the sum
        3. price every line from the catalog (client prices are display-only)
        4. atomically: conditional stock decrements, order + items insert,
           cart clear
        """
        cart = None
        if items is None:
            cart, lines = self.carts.checkout_lines(user_id)
        else:
            lines = [_line(i) for i in items]

        if not lines:
            raise InvalidRequest("Order must contain at least one item")

        wanted: Dict[int, int] = {}
        for product_id, quantity in lines:
            if quantity is None or quantity < 1:
                raise InvalidRequest("Quantity must be at least 1")
            wanted[product_id] = wanted.get(product_id, 0) + quantity

        products = self.catalog.get_products(wanted)
        for product_id, quantity in wanted.items():
            product = products.get(product_id)
            if product is None:
                raise NotFound(f"Product {product_id} not found")
            if not product.is_active:
                raise InsufficientStock(
                    f"Product {product_id} is not available", product_id=product_id
                )
            if quantity > product.stock:
                raise InsufficientStock(
                    f"Insufficient stock for product {product_id}: "
                    f"requested {quantity}, available {product.stock}",
                    product_id=product_id,
                )

        order_items = [
            OrderItemModel(
                product_id=product_id,
                quantity=quantity,
                unit_price=products[product_id].price,
            )
            for product_id, quantity in lines
        ]
        total = sum((i.unit_price * i.quantity for i in order_items), Decimal("0.00"))

        with self._transaction(f"create order for user {user_id}"):
            # stock >= quantity is re-checked by each UPDATE; ascending product id
            # keeps concurrent checkouts locking rows in the same sequence
            for product_id, quantity in sorted(wanted.items()):
                self.catalog.decrement_stock(product_id, quantity)

            order = self.repo.add_order(
                OrderModel(
                    user_id=user_id,
                    status=OrderStatus.PENDING.value,
                    total=total,
                    shipping_address=dict(shipping_address),
                    items=order_items,
                )
            )

            if cart is not None:
                self.carts.empty_for_checkout(cart)

        logger.info(
            f"Order {order.id} created for user {user_id}: "
            f"{len(order_items)} lines, total {total}"
            + (f", cart {cart.id} cleared" if cart is not None else "")
        )
        self.notifications.order_created(user_id, order.id)

        return order_view(order)

    def update_order(
        self,
        order_id: int,
        user,
        status: OrderStatus | str | None = None,
        shipping_address: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """
        Owners may cancel their order or fix the shipping address while it
        is PENDING; any other status change needs an administrator.
        Cancelling puts every line back on stock in the same transaction.
        """
        if status is None and shipping_address is None:
            raise InvalidRequest("Nothing to update")

        target = OrderStatus(status) if status is not None else None
        # owners may only cancel, any other status change is an admin operation
        admin_only = target is not None and target is not OrderStatus.CANCELLED

        order = self._load(order_id, user, admin_only=admin_only)
        current = OrderStatus(order.status)
        new_data: Dict[str, Any] = {}

        if target is not None:
            assert_transition(current, target)
            new_data["status"] = target.value

        if shipping_address is not None:
            if current is not OrderStatus.PENDING:
                raise InvalidRequest("Shipping address can only be changed while the order is PENDING")
            new_data["shipping_address"] = dict(shipping_address)

        # read before the status write, the items never change afterwards
        restock = [(i.product_id, i.quantity) for i in order.items]

        with self._transaction(f"update order {order_id}"):
            self._set_status(order_id, current, new_data)
            if new_data.get("status") == OrderStatus.CANCELLED.value:
                self._restock(restock)

        logger.info(f"Order {order_id} updated by user {user.id}: {new_data}")
        if "status" in new_data:
            self.notifications.order_status_changed(order.user_id, order_id, new_data["status"])

        return self.get_order(order_id, user)

    def delete_order(self, order_id: int, user) -> Dict[str, Any]:
        """
        Hard delete. Stock is put back only when restock_on_delete is set
        and the goods never left (PENDING or PROCESSING); a CANCELLED order
        was already restocked when it was cancelled.
        """
        order = self._load(order_id, user)
        view = order_view(order)
        status = order.status

        restock = []
        if self.restock_on_delete and is_payable(status):
            restock = [(i.product_id, i.quantity) for i in order.items]

        with self._transaction(f"delete order {order_id}"):
            # a cancel committed since the read already restocked: refuse instead of restocking twice
            if self.repo.delete_order(order_id, status) == 0:
                raise Conflict(f"Order {order_id} was modified by another request, retry")
            self._restock(restock)

        logger.info(
            f"Order {order_id} ({view['status']}) deleted by user {user.id}"
            + (", stock restored" if restock else "")
        )
        return view

    # =====================================================
    # PAYMENT HANDOFF (internal, not reachable by customers)
    # =====================================================
    def is_payable(self, order_id: int) -> bool:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        return is_payable(order.status)

    def mark_paid(self, order_id: int, commit: bool = True) -> None:
        """
        PENDING -> PROCESSING; already PROCESSING is a no-op.
        With commit=False the write joins the caller's transaction.
        """
        order = self._get_payable(order_id)
        current = OrderStatus(order.status)

        if commit:
            with self._transaction(f"mark order {order_id} paid"):
                self._apply_paid(order_id, current)
        else:
            self._apply_paid(order_id, current)

        if current is OrderStatus.PENDING:
            logger.info(f"Order {order_id} paid, status PENDING -> PROCESSING")
        else:
            logger.info(f"Order {order_id} paid while already {current.value}")

    def mark_payment_failed(self, order_id: int) -> None:
        # no status change: the order stays payable so another attempt can be made
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        logger.warning(f"Payment failed for order {order_id}, status stays {order.status}")

    # =====================================================
    # QUERIES
    # =====================================================
    def get_order(self, order_id: int, user) -> Dict[str, Any]:
        return order_view(self._load(order_id, user))

    def get_order_model(self, order_id: int, user) -> OrderModel:
        return self._load(order_id, user)

    def list_orders(
        self,
        user,
        status: OrderStatus | str | None = None,
        page: int = 1,
        limit: int = 10,
        all_users: bool = False,
    ) -> Dict[str, Any]:
        if all_users and not user.is_admin:
            raise Forbidden("Administrator role required to list all orders")
        if page < 1:
            raise InvalidRequest("page must be >= 1")
        if not 1 <= limit <= ORDERS_PAGE_LIMIT_MAX:
            raise InvalidRequest(f"limit must be between 1 and {ORDERS_PAGE_LIMIT_MAX}")

        rows, total = self.repo.list_orders(
            user_id=None if all_users else user.id,
            status=OrderStatus(status).value if status is not None else None,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return {
            "data": [order_view(o) for o in rows],
            "total": total,
            "page": page,
            "limit": limit,
        }

    # =====================================================
    # HELPERS
    # =====================================================
    def _load(self, order_id: int, user, admin_only: bool = False) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        ensure_access(order_access(order, user, admin_only=admin_only), order_id)
        return order

    def _get_payable(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        if not is_payable(order.status):
            raise InvalidTransition(f"Order {order_id} is {order.status} and cannot be paid")
        return order

    def _set_status(self, order_id: int, current: OrderStatus, new_data: Dict[str, Any]) -> None:
        rowcount = self.repo.update_order_status(order_id, current.value, new_data)
        if rowcount == 0:
            raise Conflict(f"Order {order_id} was modified by another request, retry")

    def _apply_paid(self, order_id: int, current: OrderStatus) -> None:
        if current is OrderStatus.PENDING:
            self._set_status(order_id, current, {"status": OrderStatus.PROCESSING.value})

    def _restock(self, lines: List[Tuple[int, int]]) -> None:
        for product_id, quantity in sorted(lines):
            self.catalog.increment_stock(product_id, quantity)

    @contextmanager
    def _transaction(self, what: str):
        try:
            yield
            self.repo.commit()
        except ShopError as e:
            self.repo.rollback()
            logger.warning(f"Rolled back {what}: {e.kind} {e.message}")
            raise
        except Exception as e:
            self.repo.rollback()
            logger.error(f"Rolled back {what}: {e}")
            raise
