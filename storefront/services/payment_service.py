# storefront/services/payment_service.py
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.payment import PaymentModel
from storefront.domain.access import ensure_access, order_access
from storefront.domain.errors import Conflict, InvalidTransition, NotFound
from storefront.domain.order_status import is_payable
from storefront.repos.payment_repo import PaymentRepo
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.services.payment_client import PaymentGatewayClient
from storefront.utils.logging import get_logger
from storefront.utils.settings import PAYMENT_CURRENCY

logger = get_logger(__name__)


class PaymentService:
    """
    Payment handoff.

    An order can have several payment attempts, at most one of them ends
    SUCCEEDED. Order status changes go through OrderService.mark_paid /
    mark_payment_failed, never through the customer-facing update.
    """

    def __init__(
        self,
        db: Session,
        gateway: PaymentGatewayClient | None = None,
        orders: OrderService | None = None,
        notifications: NotificationService | None = None,
        currency: str = PAYMENT_CURRENCY,
    ):
        self.repo = PaymentRepo(db)
        self.gateway = gateway or PaymentGatewayClient()
        self.orders = orders or OrderService(db)
        self.notifications = notifications or NotificationService()
        self.currency = currency

    def create_intent(self, order_id: int, user) -> Dict[str, Any]:
        order = self.orders.get_order_model(order_id, user)

        if not is_payable(order.status):
            raise InvalidTransition(f"Order {order_id} is {order.status} and cannot be paid")
        if self.repo.has_succeeded(order_id):
            raise Conflict(f"Order {order_id} is already paid")

        amount = Decimal(order.total)
        intent = self.gateway.create_payment_intent(amount, self.currency, order_id)

        payment = PaymentModel(
            order_id=order_id,
            intent_id=intent["id"],
            amount=amount,
            currency=self.currency,
            status="PENDING",
        )
        try:
            self.repo.add_payment(payment)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Payment {payment.id} (intent {payment.intent_id}) opened for order {order_id}")
        return {
            "payment_id": payment.id,
            "intent_id": payment.intent_id,
            "client_secret": intent["client_secret"],
            "amount": payment.amount,
            "currency": payment.currency,
        }

    def confirm(self, intent_id: str, succeeded: bool) -> PaymentModel:
        """
        Gateway callback. Redelivery of an already recorded result is a no-op;
        a contradicting result for a settled payment is a Conflict.
        """
        payment = self.repo.get_by_intent(intent_id)
        if not payment:
            raise NotFound(f"Payment intent {intent_id} not found")

        target = "SUCCEEDED" if succeeded else "FAILED"
        if payment.status == target:
            return payment
        if payment.status != "PENDING":
            raise Conflict(f"Payment {payment.id} is already {payment.status}")

        order_id = payment.order_id
        try:
            if succeeded and self.repo.has_succeeded(order_id):
                raise Conflict(f"Order {order_id} is already paid")

            try:
                updated = self.repo.update_payment_status(payment.id, "PENDING", target)
            except IntegrityError:
                # u_payment_succeeded_order: another attempt for this order won meanwhile
                raise Conflict(f"Order {order_id} is already paid")
            if updated == 0:
                raise Conflict(f"Payment {payment.id} was settled by another request")

            if succeeded:
                self.orders.mark_paid(order_id, commit=False)
            else:
                self.orders.mark_payment_failed(order_id)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Payment {payment.id} for order {order_id} -> {target}")
        self.notifications.payment_result(payment.order.user_id, order_id, succeeded)
        return self.repo.get_by_intent(intent_id)

    def list_for_order(self, order_id: int, user) -> List[PaymentModel]:
        self.orders.get_order_model(order_id, user)
        return self.repo.list_for_order(order_id)

    def get_payment(self, payment_id: int, user) -> PaymentModel:
        payment = self.repo.get_payment(payment_id)
        if not payment:
            raise NotFound(f"Payment {payment_id} not found")
        # scoped through the order: a stranger's payment does not exist for the caller
        ensure_access(order_access(payment.order, user), payment_id, what="Payment")
        return payment

    def list_for_user(self, user) -> List[PaymentModel]:
        return self.repo.list_for_user(user.id)
