"""Investment pool models"""
from sqlalchemy import Column, Integer, String, BigInteger, Boolean, DateTime, ForeignKey, Text, UniqueConstraint

from estate_ledger.models.database import Base


class InvestmentPool(Base):
    """Basket of verified properties that investors buy into with tokens"""
    __tablename__ = "investment_pools"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    min_investment = Column(BigInteger, nullable=False)
    max_investment = Column(BigInteger, nullable=False)
    risk_level = Column(String(10), nullable=False)
    total_invested = Column(BigInteger, nullable=False, default=0)
    total_shares = Column(BigInteger, nullable=False, default=0)
    # Deposited returns not yet paid out; principal is never distributable
    returns_balance = Column(BigInteger, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<InvestmentPool {self.id} {self.name}>"


class PoolProperty(Base):
    __tablename__ = "pool_properties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pool_id = Column(Integer, ForeignKey("investment_pools.id"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False)
    added_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("pool_id", "property_id", name="uq_pool_property"),
    )


class PoolPosition(Base):
    """An investor's cumulative stake in a pool"""
    __tablename__ = "pool_positions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pool_id = Column(Integer, ForeignKey("investment_pools.id"), nullable=False, index=True)
    investor = Column(String(64), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False, default=0)
    shares = Column(BigInteger, nullable=False, default=0)
    last_invested_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("pool_id", "investor", name="uq_pool_position"),
    )

    def __repr__(self):
        return f"<PoolPosition pool={self.pool_id} {self.investor[:8]}... ({self.shares})>"
