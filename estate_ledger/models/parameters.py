"""Runtime platform parameters"""
from sqlalchemy import Column, Integer, String, BigInteger, DateTime

from estate_ledger.models.database import Base


class PlatformParameters(Base):
    """Admin-adjustable fee and threshold settings (single row, seeded from Settings)"""
    __tablename__ = "platform_parameters"

    id = Column(Integer, primary_key=True)
    fee_bps = Column(Integer, nullable=False)
    fee_recipient = Column(String(64), nullable=False)
    min_investment = Column(BigInteger, nullable=False)
    proposal_threshold = Column(BigInteger, nullable=False)
    vote_threshold = Column(BigInteger, nullable=False)
    quorum_bps = Column(Integer, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<PlatformParameters fee_bps={self.fee_bps} quorum_bps={self.quorum_bps}>"
