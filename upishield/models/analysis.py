from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String, func
from upishield.database import Base


class PhishingScan(Base):
    """One URL scan kept for the user's scan history."""
    __tablename__ = "phishing_scans"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=True, index=True)

    url = Column(String, nullable=False)
    domain = Column(String, nullable=True, index=True)
    risk_score = Column(Float, nullable=False)
    risk_category = Column(String, nullable=False)   # safe / suspicious / dangerous / critical
    is_phishing = Column(Boolean, nullable=False, default=False)

    analysis_result = Column(JSON, nullable=False)   # full PhishingAnalysis snapshot
    created_at = Column(DateTime(timezone=True), server_default=func.now())
