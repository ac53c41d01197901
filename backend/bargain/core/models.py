"""
ORM models for the round log.

WHAT: SQLAlchemy model for the append-only round log table
WHY: External persistence of round records for later analysis
HOW: Declarative model, one row per round record, indexed by participant
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Index

from .database import Base


class RoundLog(Base):
    """
    Round log table - one row per decision point.

    WHAT: Mirrors RoundLogRow as sent to every sink
    WHY: Keep the study's raw negotiation data queryable
    HOW: Plain insert-only table, no foreign keys (sessions are not persisted)
    """
    __tablename__ = "round_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_id = Column(String(36), nullable=False)
    player_id = Column(String(100), nullable=True)
    proband_code = Column(String(100), nullable=True)
    scale_factor = Column(Float, nullable=False)
    round = Column(Integer, nullable=False)
    seller_offer = Column(Integer, nullable=False)
    counter_offer = Column(Integer, nullable=True)
    accepted = Column(Boolean, nullable=False, default=False)
    finished = Column(Boolean, nullable=False, default=False)
    deal_price = Column(Integer, nullable=True)
    logged_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_round_logs_participant", "participant_id", "round"),
    )

    def __repr__(self):
        return f"<RoundLog(participant={self.participant_id}, round={self.round}, finished={self.finished})>"
