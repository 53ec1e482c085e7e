"""
Recorded payments. Nothing here talks to a gateway; the gateway ids are
stored as the collaborator hands them over.
"""
from sqlalchemy import Column, Integer, String, Float, Text, JSON
from marketyard.database import Base, UTCDateTime


class Payment(Base):
    __tablename__ = "payments"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)
    user_id = Column(String(64), index=True, nullable=False)
    shop_owner_id = Column(String(64))
    type = Column(String(30), nullable=False)  # 'subscription', 'price_update_incentive', 'refund'
    razorpay_payment_id = Column(String(100))
    razorpay_order_id = Column(String(100))
    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="INR")
    status = Column(String(20), default="pending")  # 'pending', 'processing', 'success', 'failed', 'refunded'
    method = Column(String(50))
    description = Column(Text)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)
