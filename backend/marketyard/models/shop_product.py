from sqlalchemy import Column, Integer, String, Boolean, Float, UniqueConstraint
from marketyard.database import Base, UTCDateTime


class ShopProduct(Base):
    __tablename__ = "shop_products"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)
    shop_id = Column(String(64), index=True, nullable=False)
    product_id = Column(String(64), index=True, nullable=False)
    is_available = Column(Boolean, default=True)
    current_price = Column(Float)  # Set through a price update only
    last_price_update_at = Column(UTCDateTime)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)

    # One listing per shop + product
    __table_args__ = (
        UniqueConstraint("shop_id", "product_id", name="uq_shop_product"),
    )
