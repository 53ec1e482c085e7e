from sqlalchemy import Column, Integer, String, Float, Index
from marketyard.database import Base, UTCDateTime


class PriceUpdate(Base):
    __tablename__ = "price_updates"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)
    # No foreign key: history outlives a removed listing
    shop_product_id = Column(String(64), nullable=False)
    price = Column(Float, nullable=False)
    updated_by_type = Column(String(20), nullable=False)  # 'shop_owner', 'staff'
    updated_by_id = Column(String(64), nullable=False)
    payment_status = Column(String(20), default="pending")  # 'pending', 'processing', 'paid', 'failed'
    payment_amount = Column(Float, default=1.0)
    created_at = Column(UTCDateTime, nullable=False, index=True)

    __table_args__ = (
        Index("idx_price_updates_shop_product_created", "shop_product_id", "created_at"),
    )
