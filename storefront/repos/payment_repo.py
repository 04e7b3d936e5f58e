from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.payment import PaymentModel


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_payment(self, payment: PaymentModel) -> PaymentModel:
        self.db.add(payment)
        self.db.flush()
        return payment

    def get_payment(self, payment_id: int) -> PaymentModel | None:
        return self.db.get(PaymentModel, payment_id)

    def get_by_intent(self, intent_id: str) -> PaymentModel | None:
        return self.db.execute(
            select(PaymentModel).where(PaymentModel.intent_id == intent_id)
        ).scalar_one_or_none()

    def list_for_order(self, order_id: int) -> List[PaymentModel]:
        return list(
            self.db.execute(
                select(PaymentModel)
                .where(PaymentModel.order_id == order_id)
                .order_by(PaymentModel.id)
            ).scalars()
        )

    def list_for_user(self, user_id: int) -> List[PaymentModel]:
        return list(
            self.db.execute(
                select(PaymentModel)
                .join(OrderModel, OrderModel.id == PaymentModel.order_id)
                .where(OrderModel.user_id == user_id)
                .order_by(PaymentModel.id)
            ).scalars()
        )

    def has_succeeded(self, order_id: int) -> bool:
        return self.db.execute(
            select(PaymentModel.id).where(
                PaymentModel.order_id == order_id,
                PaymentModel.status == "SUCCEEDED",
            )
        ).first() is not None

    def update_payment_status(self, payment_id: int, old_status: str, new_status: str) -> int:
        result = self.db.execute(
            update(PaymentModel)
            .where(PaymentModel.id == payment_id, PaymentModel.status == old_status)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
