from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from socialboost.db.base import Base


class PaymentStatus:
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


class Payment(Base):
    """
    One row per successful checkout and per renewal invoice (paid or failed).

    Rows are written already resolved and are not updated afterwards.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=True, index=True)

    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="usd")
    status = Column(String, nullable=False, default=PaymentStatus.PENDING)  # pending | succeeded | failed | refunded
    payment_method = Column(String, nullable=False, default="card")
    receipt_url = Column(String, nullable=True)

    stripe_payment_intent_id = Column(String, nullable=True)
    stripe_invoice_id = Column(String, nullable=True, index=True)
    # Webhook event that produced the row; redeliveries reuse the event id
    stripe_event_id = Column(String, nullable=True, unique=True)
    stripe_customer_id = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)

    subscription = relationship("Subscription")
    user = relationship("User")

    __table_args__ = (
        Index("idx_payment_status_created", "status", "created_at"),
    )

    @property
    def order_id(self) -> str:
        """Short human-facing reference shown on receipts."""
        return f"SB{self.id:08d}"
