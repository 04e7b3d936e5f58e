from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, String, text
from sqlalchemy.orm import relationship

from storefront.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class PaymentModel(Base):
    __tablename__ = "payments"
    __table_args__ = (
        # at most one settled-successful attempt per order, whatever the webhook timing
        Index(
            "u_payment_succeeded_order",
            "order_id",
            unique=True,
            sqlite_where=text("status = 'SUCCEEDED'"),
            postgresql_where=text("status = 'SUCCEEDED'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    intent_id = Column(String(128), nullable=False, unique=True)

    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(8), nullable=False)
    status = Column(String(16), nullable=False, default="PENDING")  # PENDING, SUCCEEDED, FAILED

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    order = relationship("OrderModel", back_populates="payments")
