"""Utility token ledger models"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, BigInteger, Boolean, DateTime, UniqueConstraint

from estate_ledger.models.database import Base


class TokenSupply(Base):
    """Supply counters and pause flag for the utility token (single row)"""
    __tablename__ = "token_supply"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False)
    symbol = Column(String(10), nullable=False)
    decimals = Column(Integer, nullable=False, default=0)
    cap = Column(BigInteger, nullable=False)
    total_supply = Column(BigInteger, nullable=False, default=0)
    total_issued = Column(BigInteger, nullable=False, default=0)
    total_destroyed = Column(BigInteger, nullable=False, default=0)
    is_paused = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def headroom(self) -> int:
        return self.cap - self.total_supply

    def __repr__(self):
        return f"<TokenSupply {self.symbol} supply={self.total_supply}/{self.cap}>"


class Balance(Base):
    """Token balance held by one account"""
    __tablename__ = "balances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account = Column(String(64), nullable=False, unique=True, index=True)
    amount = Column(BigInteger, nullable=False, default=0)

    def __repr__(self):
        return f"<Balance {self.account[:8]}... ({self.amount})>"


class Allowance(Base):
    """Amount a spender may move out of an owner's balance"""
    __tablename__ = "allowances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner = Column(String(64), nullable=False, index=True)
    spender = Column(String(64), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("owner", "spender", name="uq_allowance_owner_spender"),
    )

    def __repr__(self):
        return f"<Allowance {self.owner[:8]}... -> {self.spender[:8]}... ({self.amount})>"


class Minter(Base):
    """Account allowed to issue new tokens besides the admin"""
    __tablename__ = "minters"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account = Column(String(64), nullable=False, unique=True)
    added_at = Column(DateTime, nullable=False)


class FaucetClaim(Base):
    """Last faucet withdrawal per account, for the cooldown window"""
    __tablename__ = "faucet_claims"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account = Column(String(64), nullable=False, unique=True)
    last_claimed_at = Column(DateTime, nullable=False)
    total_claimed = Column(BigInteger, nullable=False, default=0)


class WrappedBalance(Base):
    """Balance of the wrapped utility token, backed 1:1 by tokens locked in the vault"""
    __tablename__ = "wrapped_balances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account = Column(String(64), nullable=False, unique=True, index=True)
    amount = Column(BigInteger, nullable=False, default=0)

    def __repr__(self):
        return f"<WrappedBalance {self.account[:8]}... ({self.amount})>"
