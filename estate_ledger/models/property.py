"""Property and fractional holding models"""
from enum import Enum
from sqlalchemy import Column, Integer, String, BigInteger, Boolean, DateTime, ForeignKey, UniqueConstraint

from estate_ledger.models.database import Base


class PropertyType(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    INDUSTRIAL = "industrial"
    MIXED = "mixed"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Property(Base):
    """Tokenized property split into equal shares"""
    __tablename__ = "properties"

    # Ids are assigned densely from 0, never by the database
    id = Column(Integer, primary_key=True, autoincrement=False)
    metadata_uri = Column(String(512), nullable=False)
    total_valuation = Column(BigInteger, nullable=False)
    total_shares = Column(BigInteger, nullable=False)
    available_shares = Column(BigInteger, nullable=False)
    share_price = Column(BigInteger, nullable=False)  # floor(total_valuation / total_shares)
    owner = Column(String(64), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    property_type = Column(String(20), nullable=False)
    risk_level = Column(String(10), nullable=False)
    created_at = Column(DateTime, nullable=False)
    verified_at = Column(DateTime, nullable=True)

    @property
    def sold_shares(self) -> int:
        return self.total_shares - self.available_shares

    def __repr__(self):
        return f"<Property {self.id} ({self.available_shares}/{self.total_shares} available)>"


class Holding(Base):
    """An account's shares and cost basis in one property.

    Rows are never deleted; an account that sells out keeps a zero-share row
    so it still shows up in the property's investor history.
    """
    __tablename__ = "holdings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    account = Column(String(64), nullable=False, index=True)
    shares = Column(BigInteger, nullable=False, default=0)
    amount_paid = Column(BigInteger, nullable=False, default=0)  # cumulative cost basis
    last_acquired_at = Column(DateTime, nullable=False)
    first_acquired_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("property_id", "account", name="uq_holding_property_account"),
    )

    def __repr__(self):
        return f"<Holding property={self.property_id} {self.account[:8]}... ({self.shares})>"
