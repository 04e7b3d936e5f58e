# storefront/repos/order_repo.py
from typing import List, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.payment import PaymentModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def list_orders(
        self,
        user_id: int | None = None,
        status: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[OrderModel], int]:
        conditions = []
        if user_id is not None:
            conditions.append(OrderModel.user_id == user_id)
        if status is not None:
            conditions.append(OrderModel.status == status)

        total = self.db.execute(
            select(func.count()).select_from(OrderModel).where(*conditions)
        ).scalar_one()

        rows = self.db.execute(
            select(OrderModel)
            .where(*conditions)
            .options(selectinload(OrderModel.items))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars()
        return list(rows), total

    def update_order_status(self, order_id: int, old_status: str, new_data: dict) -> int:
        # compare-and-set on status: two racing transitions cannot both apply
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == old_status)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_order(self, order_id: int, old_status: str) -> int:
        # the order row goes only if its status is still the one the caller read;
        # on rowcount 0 the caller rolls back, which restores the child rows
        for child in (OrderItemModel, PaymentModel):
            self.db.execute(
                delete(child)
                .where(child.order_id == order_id)
                .execution_options(synchronize_session=False)
            )
        result = self.db.execute(
            delete(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == old_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
