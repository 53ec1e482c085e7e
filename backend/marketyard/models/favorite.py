from sqlalchemy import Column, Integer, String, UniqueConstraint
from marketyard.database import Base, UTCDateTime


class Favorite(Base):
    __tablename__ = "favorites"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)
    user_id = Column(String(64), index=True, nullable=False)
    type = Column(String(10), nullable=False)  # 'product', 'shop'
    item_id = Column(String(64), nullable=False)
    created_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "type", "item_id", name="uq_favorite"),
    )
