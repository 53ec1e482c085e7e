from sqlalchemy import Column, Integer, String, Boolean, Float
from marketyard.database import Base, UTCDateTime


class Subscription(Base):
    __tablename__ = "subscriptions"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)
    user_id = Column(String(64), index=True, nullable=False)
    status = Column(String(20), nullable=False)  # 'active', 'cancelled', 'expired', 'paused'
    amount = Column(Float, nullable=False)
    started_at = Column(UTCDateTime, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)
    cancelled_at = Column(UTCDateTime)
    auto_renew = Column(Boolean, default=True)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)
