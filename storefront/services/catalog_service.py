# storefront/services/catalog_service.py
from decimal import Decimal
from typing import Dict, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.errors import Conflict, InsufficientStock, InvalidRequest, NotFound
from storefront.domain.schemas import ProductCreate
from storefront.repos.catalog_repo import CatalogRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogService:
    """
    Catalog store as seen by the cart and order code:
    product lookup plus race-safe stock decrement / increment.

    decrement_stock and increment_stock join the caller's transaction and
    never commit; create_product and adjust_stock are standalone admin
    commands and commit.
    """

    def __init__(self, db: Session):
        self.repo = CatalogRepo(db)

    # query
    def get_product(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFound(f"Product {product_id} not found")
        return product

    def get_active_product(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product or not product.is_active:
            raise NotFound(f"Product {product_id} not found")
        return product

    def get_products(self, product_ids: Iterable[int]) -> Dict[int, ProductModel]:
        return self.repo.get_products(product_ids)

    # stock primitives
    def decrement_stock(self, product_id: int, amount: int, require_active: bool = True) -> None:
        if amount < 1:
            raise InvalidRequest("Stock decrement must be at least 1")

        if not self.repo.decrement_stock(product_id, amount, require_active=require_active):
            raise InsufficientStock(
                f"Insufficient stock for product {product_id}: requested {amount}",
                product_id=product_id,
            )

    def increment_stock(self, product_id: int, amount: int) -> None:
        if amount < 1:
            raise InvalidRequest("Stock increment must be at least 1")

        if not self.repo.increment_stock(product_id, amount):
            raise NotFound(f"Product {product_id} not found")

    # admin commands
    def create_product(self, payload: ProductCreate) -> ProductModel:
        if self.repo.get_by_sku(payload.sku):
            raise Conflict(f"Product with sku {payload.sku!r} already exists")

        product = ProductModel(
            sku=payload.sku,
            name=payload.name,
            price=Decimal(payload.price),
            stock=payload.stock,
            is_active=payload.is_active,
        )
        try:
            created = self.repo.create_product(product)
        except IntegrityError:
            self.repo.rollback()
            raise Conflict(f"Product with sku {payload.sku!r} already exists")

        logger.info(f"Created product {created.id} ({created.sku}) with stock {created.stock}")
        return created

    def adjust_stock(self, product_id: int, delta: int) -> ProductModel:
        if delta == 0:
            raise InvalidRequest("Stock adjustment must be non-zero")

        self.get_product(product_id)

        try:
            if delta > 0:
                self.increment_stock(product_id, delta)
            else:
                self.decrement_stock(product_id, -delta, require_active=False)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Adjusted stock of product {product_id} by {delta}")
        # commit expired the cached row, this reloads the new stock
        return self.get_product(product_id)
