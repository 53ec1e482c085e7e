from sqlalchemy import Column, Integer, String, Boolean, Float, Text
from marketyard.database import Base, UTCDateTime


class Shop(Base):
    __tablename__ = "shops"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)
    owner_id = Column(String(64), index=True, nullable=False)
    shop_name = Column(String(100), nullable=False)
    address = Column(Text)
    city = Column(String(100))
    state = Column(String(100))
    pincode = Column(String(10))
    latitude = Column(Float)
    longitude = Column(Float)
    phone_number = Column(String(20))
    category = Column(String(30), nullable=False)  # 'fruits', 'vegetables', ..., 'mixed'
    description = Column(Text)
    image_url = Column(String(500))
    goodwill_score = Column(Float, default=0)  # 0-100
    total_ratings = Column(Integer, default=0)
    average_rating = Column(Float, default=0)  # 0-5
    is_active = Column(Boolean, default=True)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)
