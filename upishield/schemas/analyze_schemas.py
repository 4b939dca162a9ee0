from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional, Union


RiskCategory = Literal["safe", "suspicious", "dangerous", "critical"]
UrlRecommendation = Literal["safe", "caution", "block"]
ThreatType = Literal["phishing", "scam", "malware", "fake_upi", "typosquatting", "safe", "unknown"]
FactorCategory = Literal["url_structure", "domain", "content", "technical", "blacklist"]

RiskLevel = Literal["safe", "warning", "danger", "critical"]
TransactionRecommendation = Literal["proceed", "caution", "avoid", "block"]
ContactStatus = Literal["trusted", "new", "flagged"]
ReasonSeverity = Literal["positive", "info", "warning", "critical"]
BlacklistSeverity = Literal["low", "medium", "high", "critical"]
FraudCategory = Literal["known_fraud", "flagged_contact", "impersonation", "social_engineering"]


# ============== URL SCANNING ==============


class RiskFactor(BaseModel):
    """One triggered heuristic. Impact is for display only."""
    model_config = ConfigDict(frozen=True)

    name: str
    impact: float = Field(ge=0.0, le=1.0)
    description: str
    category: FactorCategory


class DomainAnalysis(BaseModel):
    domain: str
    legitimate_domain: Optional[str] = None  # Brand the domain appears to imitate
    is_suspicious_tld: bool
    has_valid_ssl: Union[bool, Literal["unknown"]]


class PhishingAnalysis(BaseModel):
    is_phishing: bool
    risk_score: float = Field(ge=0.0, le=1.0)
    risk_category: RiskCategory
    threat_type: ThreatType
    indicators: List[str]
    factors: List[RiskFactor]
    domain_analysis: DomainAnalysis
    recommendation: UrlRecommendation
    explanation: str


class UrlScanRequest(BaseModel):
    url: str
    user_id: Optional[str] = None


class ScanHistoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    risk_score: float
    is_phishing: bool
    created_at: Optional[datetime] = None
    analysis_result: PhishingAnalysis


# ============== TRANSACTION ANALYSIS ==============


class Reason(BaseModel):
    """A human-readable finding. Severity carries its polarity."""
    model_config = ConfigDict(frozen=True)

    severity: ReasonSeverity
    text: str


class BehaviorFlags(BaseModel):
    newContact: bool = False
    timeAnomaly: bool = False
    suspiciousUpi: bool = False
    suspiciousKeywords: bool = False
    isBlacklisted: bool = False


class ProfileStats(BaseModel):
    avg_amount: float
    max_amount: float
    transaction_count: int
    known_devices: int


class TransactionAnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    risk_score: float = Field(ge=0.0, le=1.0)
    risk_level: RiskLevel
    recommendation: TransactionRecommendation
    reasons: List[Reason]
    impersonation_warning: bool = False
    similar_contacts: List[str] = Field(default_factory=list)
    contact_status: ContactStatus = "new"
    contact_name: Optional[str] = None
    is_blacklisted: bool = False
    behavior_flags: BehaviorFlags = Field(default_factory=BehaviorFlags)
    amount_anomaly: bool = False
    profile_stats: Optional[ProfileStats] = None


class TransactionAnalysisRequest(BaseModel):
    user_id: str
    amount: float
    receiver_upi: str
    hour: Optional[int] = None  # Caller's local hour; server clock when omitted


class TransactionCreateRequest(BaseModel):
    user_id: str
    amount: float = Field(gt=0)
    receiver_upi: str
    hour: Optional[int] = Field(default=None, ge=0, le=23)


# ============== COLLABORATOR RECORDS ==============


class UserBehaviorProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    avg_transaction_amount: float = 0.0
    max_transaction_amount: float = 0.0
    std_dev_amount: float = 0.0
    transaction_count: int = 0
    typical_transaction_hours: List[int] = Field(default_factory=list)
    last_transaction_at: Optional[datetime] = None
    trusted_device_ids: List[str] = Field(default_factory=list)


class TrustedContact(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    upi_id: str
    contact_name: Optional[str] = None
    status: ContactStatus = "new"


class TransactionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    amount: float
    receiver_upi_id: str
    created_at: Optional[datetime] = None
    transaction_hour: Optional[int] = None
    risk_score: Optional[float] = None
    fraud_category: Optional[str] = None


class CompletedTransactionAssessment(BaseModel):
    """Score of a payment that has already been made, stored with its history row."""
    risk_score: float
    reasons: List[Reason]
    fraud_category: Optional[FraudCategory] = None
    is_anomaly: bool = False


class RecordedTransaction(TransactionRecord):
    reasons: List[Reason] = Field(default_factory=list)
    is_anomaly: bool = False


class BlacklistEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    upi_id: str
    reason: Optional[str] = None
    reported_count: int = 1
    severity: BlacklistSeverity = "medium"
    source: str = "user_report"


class ContactCreateRequest(BaseModel):
    user_id: str
    upi_id: str
    contact_name: Optional[str] = None
    status: ContactStatus = "trusted"
