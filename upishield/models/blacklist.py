from sqlalchemy import Column, DateTime, Integer, String, Text, func
from upishield.database import Base


class UpiBlacklistEntry(Base):
    """A UPI id reported as fraudulent. Stored lower-cased."""
    __tablename__ = "upi_blacklist"

    id = Column(Integer, primary_key=True, index=True)
    upi_id = Column(String, nullable=False, unique=True, index=True)
    reason = Column(Text, nullable=True)
    reported_count = Column(Integer, nullable=False, default=1)
    severity = Column(String(10), nullable=False, default="medium")  # low / medium / high / critical
    source = Column(String(20), nullable=False, default="user_report")
    added_by = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PhishingDomain(Base):
    __tablename__ = "known_phishing_domains"

    id = Column(Integer, primary_key=True, index=True)
    domain = Column(String, nullable=False, unique=True, index=True)
    source = Column(String(20), nullable=False, default="admin")  # admin | auto_scan
    created_at = Column(DateTime(timezone=True), server_default=func.now())
