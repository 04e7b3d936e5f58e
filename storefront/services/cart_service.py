from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any, Iterable, List, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import Conflict, InsufficientStock, InvalidRequest, NotFound
from storefront.repos.cart_repo import CartRepo
from storefront.services.catalog_service import CatalogService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _check_quantity(quantity: int) -> None:
    if quantity is None or quantity < 1:
        raise InvalidRequest("Quantity must be at least 1")


class CartService:
    """
    Per-user cart.
    commands (add, update, remove, clear, merge) modify state and bump the cart version,
    queries (get_or_create) only read.

    Stock is checked against the current catalog value, nothing is reserved;
    the authoritative check happens when the order is placed.
    """

    def __init__(self, db: Session, catalog: CatalogService | None = None):
        self.repo = CartRepo(db)
        self.catalog = catalog or CatalogService(db)

    # query
    def get_or_create(self, user_id: int) -> Dict[str, Any]:
        cart = self._get_or_create_cart(user_id)
        return self._cart_view(cart)

    def checkout_lines(self, user_id: int) -> Tuple[CartModel | None, List[Tuple[int, int]]]:
        """(cart, [(product_id, quantity), ...]) for the order builder."""
        cart = self.repo.get_cart_by_user(user_id)
        if not cart:
            return None, []
        return cart, [(i.product_id, i.quantity) for i in self.repo.get_cart_items(cart.id)]

    # commands
    def add_item(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        _check_quantity(quantity)

        product = self.catalog.get_active_product(product_id)
        cart = self._get_or_create_cart(user_id)

        existing_item = self.repo.get_cart_item(cart.id, product_id)
        new_quantity = quantity + (existing_item.quantity if existing_item else 0)

        # summed quantity is validated, not just the increment
        if new_quantity > product.stock:
            raise InsufficientStock(
                f"Only {product.stock} of product {product_id} in stock, "
                f"cart would hold {new_quantity}",
                product_id=product_id,
            )

        with self._transaction():
            if existing_item:
                logger.info(
                    f"Product {product_id} already in cart {cart.id}, quantity "
                    f"{existing_item.quantity} -> {new_quantity}"
                )
                existing_item.quantity = new_quantity
                self.repo.add_cart_item(existing_item)
            else:
                logger.info(f"Adding product {product_id} x{quantity} to cart {cart.id}")
                self.repo.add_cart_item(
                    CartItemModel(cart_id=cart.id, product_id=product_id, quantity=quantity)
                )
            self._bump_version(cart)

        return self._cart_view(cart)

    def update_item(self, user_id: int, item_id: int, quantity: int) -> Dict[str, Any]:
        _check_quantity(quantity)

        cart = self._get_or_create_cart(user_id)
        item = self.repo.get_cart_item_by_id(cart.id, item_id)
        if not item:
            raise NotFound(f"Cart item {item_id} not found")

        product = self.catalog.get_active_product(item.product_id)
        if quantity > product.stock:
            raise InsufficientStock(
                f"Only {product.stock} of product {product.id} in stock",
                product_id=product.id,
            )

        with self._transaction():
            item.quantity = quantity
            self.repo.add_cart_item(item)
            self._bump_version(cart)

        logger.info(f"Cart item {item_id} in cart {cart.id} set to quantity {quantity}")
        return self._cart_view(cart)

    def remove_item(self, user_id: int, item_id: int) -> Dict[str, Any]:
        cart = self._get_or_create_cart(user_id)
        item = self.repo.get_cart_item_by_id(cart.id, item_id)
        if not item:
            raise NotFound(f"Cart item {item_id} not found")

        with self._transaction():
            self.repo.delete_cart_item(item)
            self._bump_version(cart)

        logger.info(f"Removed item {item_id} from cart {cart.id}")
        return self._cart_view(cart)

    def clear(self, user_id: int) -> Dict[str, Any]:
        cart = self._get_or_create_cart(user_id)

        with self._transaction():
            removed = self.repo.delete_all_items(cart.id)
            self._bump_version(cart)

        logger.info(f"Cleared cart {cart.id} ({removed} items removed)")
        return self._cart_view(cart)

    def merge(self, user_id: int, incoming: Iterable[Tuple[int, int]]) -> Dict[str, Any]:
        """
        Fold a guest cart into the user's cart.
        Every line is validated before anything is written: one bad line
        rejects the whole merge.
        """
        wanted: Dict[int, int] = {}
        for product_id, quantity in incoming:
            _check_quantity(quantity)
            wanted[product_id] = wanted.get(product_id, 0) + quantity

        cart = self._get_or_create_cart(user_id)
        current = {i.product_id: i for i in self.repo.get_cart_items(cart.id)}

        plan = []
        for product_id, quantity in wanted.items():
            product = self.catalog.get_active_product(product_id)
            existing_item = current.get(product_id)
            new_quantity = quantity + (existing_item.quantity if existing_item else 0)
            if new_quantity > product.stock:
                raise InsufficientStock(
                    f"Only {product.stock} of product {product_id} in stock, "
                    f"merged cart would hold {new_quantity}",
                    product_id=product_id,
                )
            plan.append((product_id, existing_item, new_quantity))

        with self._transaction():
            for product_id, existing_item, new_quantity in plan:
                if existing_item:
                    existing_item.quantity = new_quantity
                    self.repo.add_cart_item(existing_item)
                else:
                    self.repo.add_cart_item(
                        CartItemModel(cart_id=cart.id, product_id=product_id, quantity=new_quantity)
                    )
            self._bump_version(cart)

        logger.info(f"Merged {len(plan)} guest lines into cart {cart.id}")
        return self._cart_view(cart)

    def empty_for_checkout(self, cart: CartModel) -> None:
        """Remove every line inside the caller's transaction (no commit)."""
        self.repo.delete_all_items(cart.id)
        self._bump_version(cart)

    # helpers
    def _get_or_create_cart(self, user_id: int) -> CartModel:
        existing = self.repo.get_cart_by_user(user_id)
        if existing:
            return existing

        try:
            created = self.repo.create_cart(CartModel(user_id=user_id, version=1))
        except IntegrityError:
            # lost the race against a parallel first access, the other cart wins
            self.repo.rollback()
            return self.repo.get_cart_by_user(user_id)

        logger.info(f"Created cart {created.id} for user {user_id}")
        return created

    def _bump_version(self, cart: CartModel) -> None:
        # Optimistic locking
        # UPDATE carts SET version = 2 WHERE id = 1 AND version = 1
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data={
                "version": cart.version + 1,
                "updated_at": datetime.now(timezone.utc),
            },
        )
        if rowcount == 0:
            raise Conflict("Cart was modified by another request, retry")

    @contextmanager
    def _transaction(self):
        try:
            yield
            self.repo.commit()
        except IntegrityError:
            # u_cart_product: the same product was added by a parallel request
            self.repo.rollback()
            raise Conflict("Cart was modified by another request, retry")
        except Exception:
            self.repo.rollback()
            raise

    def _cart_view(self, cart: CartModel) -> Dict[str, Any]:
        items = self.repo.get_cart_items(cart.id)
        lines = [
            {
                "id": i.id,
                "product_id": i.product_id,
                "name": i.product.name,
                "quantity": i.quantity,
                "unit_price": i.product.price,
                "line_total": i.product.price * i.quantity,
            }
            for i in items
        ]
        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "items": lines,
            "total": sum((line["line_total"] for line in lines), Decimal("0.00")),
            "updated_at": cart.updated_at,
        }
