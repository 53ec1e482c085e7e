from sqlalchemy import Column, Integer, String, Boolean
from marketyard.database import Base, UTCDateTime


class User(Base):
    __tablename__ = "users"

    seq = Column(Integer, primary_key=True, autoincrement=True)  # insertion order
    id = Column(String(64), unique=True, index=True, nullable=False)
    phone_number = Column(String(20), unique=True, index=True, nullable=False)
    email = Column(String(255))
    name = Column(String(100), nullable=False)
    user_type = Column(String(20), nullable=False)  # 'shop_owner', 'end_user', 'staff', 'admin'
    password_hash = Column(String(255))
    is_premium = Column(Boolean, default=False)
    subscription_expires_at = Column(UTCDateTime)
    is_active = Column(Boolean, default=True)
    is_verified = Column(Boolean, default=False)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)
