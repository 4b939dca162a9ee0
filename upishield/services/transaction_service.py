"""
Pre- and post-transaction risk scoring.

Everything here is pure: the caller resolves history, the behavior profile
and trusted contacts, and decides when to persist the updated profile.
"""

import math
import re
import statistics
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from upishield.config import settings
from upishield.errors import TransactionValidationError
from upishield.schemas.analyze_schemas import (
    BehaviorFlags,
    BlacklistEntry,
    CompletedTransactionAssessment,
    ProfileStats,
    Reason,
    TransactionAnalysisResult,
    TransactionRecord,
    TrustedContact,
    UserBehaviorProfile,
)
from upishield.services.threat_tables import COMPLETED_SCAM_KEYWORDS, SUSPICIOUS_UPI_KEYWORDS
from upishield.utils.risk_levels import clamp_score, transaction_risk_from_score
from upishield.utils.similarity import calculate_similarity

UPI_ID_RE = re.compile(r"[\w.\-]{2,256}@[A-Za-z]{2,64}", re.ASCII)
REPEATED_CHARS_RE = re.compile(r"(.)\1{2,}")

LATE_NIGHT_HOURS = range(0, 6)
MIN_HOURS_FOR_NEW_HOUR_CHECK = 6


def _format_inr(amount: float) -> str:
    if float(amount).is_integer():
        return f"₹{amount:,.0f}"
    return f"₹{amount:,.2f}"


def validate_transaction_input(
    amount: float,
    receiver_upi: str,
    hour: Optional[int] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Validate a candidate payment and resolve the hour to analyze.

    Returns the caller's hour, or the server clock hour when none was given.
    Raises TransactionValidationError for anything out of range.
    """
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise TransactionValidationError("amount", "Invalid amount")
    try:
        value = float(amount)
    except OverflowError:
        raise TransactionValidationError("amount", "Invalid amount") from None
    if not math.isfinite(value) or value <= 0 or value > settings.max_transaction_amount:
        raise TransactionValidationError("amount", "Invalid amount")

    if not isinstance(receiver_upi, str) or not UPI_ID_RE.fullmatch(receiver_upi):
        raise TransactionValidationError("receiver_upi", "Invalid UPI ID format")

    if hour is None:
        return (now or datetime.now()).hour
    if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
        raise TransactionValidationError("hour", "Hour must be between 0 and 23")
    return hour


@dataclass
class BehaviorCheck:
    """Accumulated score, reasons and flags from the behavior checks."""
    score: float = 0.0
    reasons: List[Reason] = field(default_factory=list)
    flags: BehaviorFlags = field(default_factory=BehaviorFlags)
    amount_anomaly: bool = False

    def add(self, delta: float, severity: str, text: str):
        self.score += delta
        self.reasons.append(Reason(severity=severity, text=text))


def _check_time_pattern(check: BehaviorCheck, hour: int, profile: Optional[UserBehaviorProfile]):
    typical_hours = profile.typical_transaction_hours if profile else []
    known_hour = hour in typical_hours

    if hour in LATE_NIGHT_HOURS:
        if not known_hour:
            check.add(
                0.10, "warning",
                f"Unusual time: late night transaction ({hour}:00) outside your typical pattern",
            )
            check.flags.timeAnomaly = True
    elif len(typical_hours) >= MIN_HOURS_FOR_NEW_HOUR_CHECK and not known_hour:
        check.add(0.05, "info", f"New transaction time ({hour}:00)")
        check.flags.timeAnomaly = True


def _check_new_contact(
    check: BehaviorCheck,
    amount: float,
    receiver_upi: str,
    recent_transactions: Sequence[TransactionRecord],
):
    receiver = receiver_upi.lower()
    seen_before = any(
        t.receiver_upi_id and t.receiver_upi_id.lower() == receiver
        for t in recent_transactions
    )
    if seen_before:
        return

    if amount > 5000:
        check.add(0.20, "warning", f"Large first-time transaction ({_format_inr(amount)}) to new recipient")
    elif amount > 2000:
        check.add(0.10, "info", "First transaction to this recipient")
    else:
        check.add(0.05, "info", "New recipient - no prior transaction history")
    check.flags.newContact = True


def _check_upi_pattern(check: BehaviorCheck, receiver_upi: str):
    local_part, _, domain = receiver_upi.lower().partition("@")

    if REPEATED_CHARS_RE.search(domain):
        check.add(0.20, "warning", f"Suspicious UPI pattern: '{domain}' contains repeated characters")
        check.flags.suspiciousUpi = True

    digits = sum(ch.isdigit() for ch in local_part)
    if len(local_part) > 8 and digits > len(local_part) * 0.5:
        check.add(0.15, "warning", "UPI ID contains an unusual pattern of numbers - potential fake account")
        check.flags.suspiciousUpi = True


def _check_keywords(check: BehaviorCheck, receiver_upi: str):
    upi_lower = receiver_upi.lower()
    if any(kw in upi_lower for kw in SUSPICIOUS_UPI_KEYWORDS):
        check.add(0.35, "warning", "UPI ID contains keywords commonly used in scams")
        check.flags.suspiciousKeywords = True


def _check_amount(check: BehaviorCheck, amount: float, profile: Optional[UserBehaviorProfile]):
    if amount >= 50000:
        check.add(0.25, "critical", f"Very high amount ({_format_inr(amount)}) - requires extra verification")
        check.amount_anomaly = True
    elif amount >= 25000:
        check.add(0.15, "warning", f"High amount ({_format_inr(amount)}) - above typical threshold")
        check.amount_anomaly = True
    elif amount >= 10000:
        check.add(0.08, "info", f"Elevated amount ({_format_inr(amount)})")

    if profile and profile.max_transaction_amount > 0 and amount > profile.max_transaction_amount * 2:
        check.add(
            0.20, "warning",
            "Transaction amount is more than double your previous maximum "
            f"({_format_inr(profile.max_transaction_amount)})",
        )
        check.amount_anomaly = True


def run_behavior_checks(
    amount: float,
    receiver_upi: str,
    hour: int,
    recent_transactions: Sequence[TransactionRecord],
    profile: Optional[UserBehaviorProfile],
) -> BehaviorCheck:
    """Time, recipient, UPI-shape, keyword and amount checks plus the combined bump."""
    check = BehaviorCheck()

    _check_time_pattern(check, hour, profile)
    _check_new_contact(check, amount, receiver_upi, recent_transactions)
    _check_upi_pattern(check, receiver_upi)
    _check_keywords(check, receiver_upi)
    _check_amount(check, amount, profile)

    if check.flags.suspiciousKeywords and check.flags.newContact and amount > 5000:
        check.add(0.20, "critical", "Multiple risk factors: suspicious UPI + new contact + high amount")

    return check


def find_similar_contacts(
    receiver_upi: str,
    trusted_contacts: Sequence[TrustedContact],
    threshold: Optional[float] = None,
) -> List[TrustedContact]:
    """Contacts whose UPI id looks like, but is not, the receiver."""
    threshold = threshold if threshold is not None else settings.similarity_threshold
    similar = []
    for contact in trusted_contacts:
        similarity = calculate_similarity(contact.upi_id, receiver_upi)
        if threshold < similarity < 1.0:
            similar.append(contact)
    return similar


def build_profile_stats(profile: Optional[UserBehaviorProfile]) -> Optional[ProfileStats]:
    if profile is None:
        return None
    return ProfileStats(
        avg_amount=profile.avg_transaction_amount or 0.0,
        max_amount=profile.max_transaction_amount or 0.0,
        transaction_count=profile.transaction_count or 0,
        known_devices=len(profile.trusted_device_ids or []),
    )


def score_transaction(
    amount: float,
    receiver_upi: str,
    hour: int,
    recent_transactions: Sequence[TransactionRecord],
    profile: Optional[UserBehaviorProfile],
    trusted_contacts: Sequence[TrustedContact],
) -> TransactionAnalysisResult:
    """
    Score a candidate payment that is not on the blacklist.

    Behavior checks add bounded amounts to the score; the recipient's contact
    status then discounts or raises it. The final score is clamped to [0, 1]
    and bucketed into a risk level and recommendation.
    """
    check = run_behavior_checks(amount, receiver_upi, hour, recent_transactions, profile)
    score = check.score
    reasons = list(check.reasons)

    receiver = receiver_upi.lower()
    matching = next((c for c in trusted_contacts if c.upi_id.lower() == receiver), None)
    similar = find_similar_contacts(receiver_upi, trusted_contacts)

    if matching is not None:
        if matching.status == "trusted":
            score -= 0.30
            reasons.insert(0, Reason(severity="positive", text="Recipient is a trusted contact"))
        elif matching.status == "flagged":
            score += 0.40
            reasons.append(Reason(severity="warning", text="Recipient has been flagged previously"))

    if similar:
        score += 0.25
        lookalike = similar[0].contact_name or similar[0].upi_id
        reasons.append(Reason(severity="warning", text=f"UPI ID is similar to trusted contact: {lookalike}"))

    risk_score = round(clamp_score(score), 4)
    risk_level, recommendation = transaction_risk_from_score(risk_score)

    if risk_level == "safe" and not reasons:
        reasons.append(Reason(severity="positive", text="Standard transaction - all checks passed"))

    return TransactionAnalysisResult(
        risk_score=risk_score,
        risk_level=risk_level,
        recommendation=recommendation,
        reasons=reasons,
        impersonation_warning=bool(similar),
        similar_contacts=[c.upi_id for c in similar],
        contact_status=matching.status if matching else "new",
        contact_name=matching.contact_name if matching else None,
        is_blacklisted=False,
        behavior_flags=check.flags,
        amount_anomaly=check.amount_anomaly,
        profile_stats=build_profile_stats(profile),
    )


def blacklisted_result(entry: BlacklistEntry) -> TransactionAnalysisResult:
    """Result for a receiver found on the UPI blacklist; overrides every other check."""
    return TransactionAnalysisResult(
        risk_score=1.0,
        risk_level="critical",
        recommendation="block",
        reasons=[
            Reason(severity="critical", text="BLOCKED: This UPI ID has been reported as fraudulent"),
            Reason(severity="warning", text=f"{entry.reported_count or 1} fraud reports received"),
            Reason(severity="info", text=entry.reason or "Known fraudulent account"),
        ],
        impersonation_warning=False,
        similar_contacts=[],
        contact_status="flagged",
        contact_name=None,
        is_blacklisted=True,
        behavior_flags=BehaviorFlags(isBlacklisted=True),
        amount_anomaly=True,
        profile_stats=None,
    )


def score_completed_transaction(
    amount: float,
    receiver_upi: str,
    history: Sequence[TransactionRecord],
    trusted_contacts: Sequence[TrustedContact],
    blacklist_entry: Optional[BlacklistEntry] = None,
) -> CompletedTransactionAssessment:
    """
    Score a payment after it has been made, for the transaction history.

    Unlike score_transaction this compares the amount with the recorded
    history itself (mean, max and population standard deviation) and names
    the most likely fraud category.
    """
    if blacklist_entry is not None:
        return CompletedTransactionAssessment(
            risk_score=1.0,
            reasons=[Reason(
                severity="critical",
                text=(
                    "This UPI ID has been reported as fraudulent "
                    f"({blacklist_entry.reported_count or 1} reports, severity: {blacklist_entry.severity})"
                ),
            )],
            fraud_category="known_fraud",
            is_anomaly=True,
        )

    score = 0.0
    reasons: List[Reason] = []
    category = None
    is_anomaly = False

    receiver = receiver_upi.lower()
    domain = receiver.partition("@")[2]

    matching = next((c for c in trusted_contacts if c.upi_id.lower() == receiver), None)
    if matching is not None:
        name = matching.contact_name or matching.upi_id
        if matching.status == "trusted":
            score -= 0.30
            reasons.append(Reason(severity="positive", text=f'Recipient "{name}" is a trusted contact'))
        elif matching.status == "flagged":
            score += 0.40
            reasons.append(Reason(severity="warning", text=f'Recipient "{name}" was previously flagged'))
            category = "flagged_contact"

    similar = find_similar_contacts(receiver_upi, trusted_contacts)
    if similar:
        score += 0.30
        category = "impersonation"
        is_anomaly = True
        lookalike = similar[0].contact_name or similar[0].upi_id
        reasons.append(Reason(
            severity="warning",
            text=f"UPI ID is suspiciously similar to your trusted contact: {lookalike}",
        ))

    if any(kw in receiver for kw in COMPLETED_SCAM_KEYWORDS):
        score += 0.25
        category = category or "social_engineering"
        reasons.append(Reason(severity="warning", text="UPI ID contains suspicious keywords commonly used in scams"))

    if REPEATED_CHARS_RE.search(domain):
        score += 0.20
        category = category or "impersonation"
        reasons.append(Reason(
            severity="warning",
            text=f'Domain "{domain}" has unusual repeated characters - possible fake bank impersonation',
        ))

    amounts = [t.amount for t in history]
    if amounts:
        avg = statistics.fmean(amounts)
        highest = max(amounts)
        std = statistics.pstdev(amounts)

        if amount > highest * 2:
            score += 0.20
            is_anomaly = True
            reasons.append(Reason(
                severity="warning",
                text=(
                    f"Amount {_format_inr(amount)} is more than double your highest "
                    f"transaction ({_format_inr(highest)})"
                ),
            ))
        elif std > 0 and amount > avg + 3 * std:
            score += 0.15
            is_anomaly = True
            reasons.append(Reason(
                severity="warning",
                text=f"Amount is unusually high compared to your typical transactions (avg: ₹{avg:,.0f})",
            ))

        paid_before = any(t.receiver_upi_id and t.receiver_upi_id.lower() == receiver for t in history)
        if not paid_before and matching is None:
            score += 0.10
            reasons.append(Reason(
                severity="info",
                text="First transaction to this recipient - please verify their identity",
            ))

        # Small test payments usually precede a larger fraudulent one
        if amount < 10 and len(amounts) > 3 and amount < avg * 0.01:
            score += 0.05
            reasons.append(Reason(
                severity="info",
                text="Very small transaction amount - sometimes used as a test before larger fraud attempts",
            ))
    else:
        score += 0.15
        reasons.append(Reason(severity="info", text="Limited transaction history - exercise extra caution"))

    risk_score = round(clamp_score(score), 4)
    if risk_score < 0.2 and len(reasons) <= 1:
        reasons.append(Reason(severity="positive", text="Transaction appears normal based on your history"))

    return CompletedTransactionAssessment(
        risk_score=risk_score,
        reasons=reasons,
        fraud_category=category,
        is_anomaly=is_anomaly,
    )


def apply_transaction_to_profile(
    profile: Optional[UserBehaviorProfile],
    amount: float,
    hour: int,
    now: Optional[datetime] = None,
    hours_limit: Optional[int] = None,
) -> UserBehaviorProfile:
    """
    Fold one analyzed transaction into a behavior profile.

    Running average and maximum, count + 1, the hour appended when new
    (keeping only the most recent distinct hours), last_transaction_at set.
    std_dev_amount and trusted devices are carried over unchanged.
    """
    now = now or datetime.now(timezone.utc)
    hours_limit = hours_limit or settings.typical_hours_limit

    if profile is None:
        return UserBehaviorProfile(
            avg_transaction_amount=amount,
            max_transaction_amount=amount,
            transaction_count=1,
            typical_transaction_hours=[hour],
            last_transaction_at=now,
        )

    old_count = profile.transaction_count or 0
    old_avg = profile.avg_transaction_amount or 0.0
    new_count = old_count + 1
    new_avg = (old_avg * old_count + amount) / new_count if old_count > 0 else amount

    hours = list(profile.typical_transaction_hours or [])
    if hour not in hours:
        hours = (hours + [hour])[-hours_limit:]

    return profile.model_copy(update={
        "avg_transaction_amount": new_avg,
        "max_transaction_amount": max(profile.max_transaction_amount or 0.0, amount),
        "transaction_count": new_count,
        "typical_transaction_hours": hours,
        "last_transaction_at": now,
    })
