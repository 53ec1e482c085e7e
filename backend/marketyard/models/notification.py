"""
In-app notifications for a user.
"""
from sqlalchemy import Column, Integer, String, Boolean, Text, JSON
from marketyard.database import Base, UTCDateTime


class Notification(Base):
    __tablename__ = "notifications"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)
    user_id = Column(String(64), index=True, nullable=False)

    # Notification content
    type = Column(String(50), nullable=False)  # 'price_drop', 'payment_received', 'subscription_expiring', 'system'
    title = Column(String(255), nullable=False)
    message = Column(Text)
    action_url = Column(String(500))
    metadata_ = Column("metadata", JSON)  # product_id, shop_id, old/new price...

    # Status
    is_read = Column(Boolean, default=False)
    read_at = Column(UTCDateTime)

    created_at = Column(UTCDateTime, nullable=False)
