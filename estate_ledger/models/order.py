"""Secondary market sell order model"""
from sqlalchemy import Column, Integer, String, BigInteger, Boolean, DateTime, ForeignKey

from estate_ledger.models.database import Base


class SellOrder(Base):
    """Resale offer of shares in one property.

    Shares are not escrowed; the seller's holding is only debited when a
    buyer fills the order.
    """
    __tablename__ = "sell_orders"

    id = Column(Integer, primary_key=True, autoincrement=False)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    seller = Column(String(64), nullable=False, index=True)
    shares_offered = Column(BigInteger, nullable=False)  # remaining, decreases on each fill
    shares_filled = Column(BigInteger, nullable=False, default=0)
    price_per_share = Column(BigInteger, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    cancelled_at = Column(DateTime, nullable=True)

    @property
    def total_price(self) -> int:
        return self.shares_offered * self.price_per_share

    def is_expired(self, now) -> bool:
        return now > self.expires_at

    def __repr__(self):
        return f"<SellOrder {self.id} property={self.property_id} ({self.shares_offered} @ {self.price_per_share})>"
