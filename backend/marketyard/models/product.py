from sqlalchemy import Column, Integer, String, Boolean, Text
from marketyard.database import Base, UTCDateTime


class Product(Base):
    __tablename__ = "products"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False, index=True)  # Canonical name
    category = Column(String(30), nullable=False)
    unit = Column(String(20), nullable=False)  # 'kg', 'piece', 'dozen', ...
    description = Column(Text)
    image_url = Column(String(500))
    is_active = Column(Boolean, default=True)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime)
