# storefront/repos/catalog_repo.py
from typing import Dict, Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class CatalogRepo:
    """
    Product reads and the two stock primitives.

    Stock is only ever changed by a single conditional UPDATE, never by
    read-modify-write, so the check and the write happen in the same
    statement. Neither primitive commits: the caller owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_products(self, product_ids: Iterable[int]) -> Dict[int, ProductModel]:
        ids = set(product_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(ProductModel).where(ProductModel.id.in_(ids))
        ).scalars()
        return {p.id: p for p in rows}

    def get_by_sku(self, sku: str) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(ProductModel.sku == sku)
        ).scalar_one_or_none()

    def create_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    def decrement_stock(self, product_id: int, amount: int, require_active: bool = True) -> bool:
        # UPDATE products SET stock = stock - :amount WHERE id = :id AND stock >= :amount
        conditions = [ProductModel.id == product_id, ProductModel.stock >= amount]
        if require_active:
            conditions.append(ProductModel.is_active.is_(True))

        result = self.db.execute(
            update(ProductModel)
            .where(*conditions)
            .values(stock=ProductModel.stock - amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def increment_stock(self, product_id: int, amount: int) -> bool:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
