# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Fire-and-forget customer notifications.
    Called only after the transaction that produced the event has committed,
    so a broker outage never undoes an order.
    """

    def order_created(self, user_id: int, order_id: int):
        self._dispatch(user_id, order_id, "CREATED")

    def order_status_changed(self, user_id: int, order_id: int, status: str):
        self._dispatch(user_id, order_id, status)

    def payment_result(self, user_id: int, order_id: int, succeeded: bool):
        self._dispatch(user_id, order_id, "PAYMENT_SUCCEEDED" if succeeded else "PAYMENT_FAILED")

    @staticmethod
    def _dispatch(user_id: int, order_id: int, event: str):
        try:
            send_order_notification_task.delay(user_id, order_id, event)
        except Exception as e:
            logger.warning(f"Failed to queue notification {event} for order {order_id}: {e}")


@celery_app.task(name="storefront.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int, event: str):
    """
    Celery task - a real deployment would hand this to an email/SMS/push provider.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_id} -> {event}")
    return {"user_id": user_id, "order_id": order_id, "event": event, "status": "sent"}
