"""Tests for pre-transaction input validation and scoring."""

import math
from datetime import datetime

import pytest

from upishield.errors import TransactionValidationError
from upishield.schemas.analyze_schemas import (
    BlacklistEntry,
    TransactionRecord,
    TrustedContact,
    UserBehaviorProfile,
)
from upishield.services.transaction_service import (
    blacklisted_result,
    find_similar_contacts,
    score_transaction,
    validate_transaction_input,
)


def score(amount, receiver, hour=14, history=(), profile=None, contacts=()):
    return score_transaction(
        amount=amount,
        receiver_upi=receiver,
        hour=hour,
        recent_transactions=list(history),
        profile=profile,
        trusted_contacts=list(contacts),
    )


class TestInputValidation:
    """validate_transaction_input rejects anything out of range."""

    @pytest.mark.parametrize("amount", [0, -5, 10_000_001, 10**400, math.nan, math.inf, True, "100", None])
    def test_invalid_amount(self, amount):
        with pytest.raises(TransactionValidationError) as exc:
            validate_transaction_input(amount, "friend@okaxis", 12)
        assert exc.value.field == "amount"
        assert exc.value.message == "Invalid amount"

    @pytest.mark.parametrize("upi", ["invalid", "a@bank", "name@bank1", "name@okaxis\n", "na me@okaxis", "", None])
    def test_invalid_upi_id(self, upi):
        with pytest.raises(TransactionValidationError) as exc:
            validate_transaction_input(500, upi, 12)
        assert exc.value.field == "receiver_upi"

    @pytest.mark.parametrize("hour", [-1, 24, 7.5])
    def test_invalid_hour(self, hour):
        with pytest.raises(TransactionValidationError) as exc:
            validate_transaction_input(500, "friend@okaxis", hour)
        assert exc.value.field == "hour"

    def test_valid_input_returns_hour(self):
        assert validate_transaction_input(10_000_000, "first.last-1@okhdfcbank", 0) == 0

    def test_missing_hour_uses_clock(self):
        now = datetime(2024, 3, 1, 7, 45)
        assert validate_transaction_input(500, "friend@okaxis", None, now=now) == 7

    def test_validation_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_transaction_input(-1, "friend@okaxis", 3)


class TestBehaviorChecks:
    """Each behavior check and its contribution to the score."""

    def test_small_payment_to_new_recipient(self):
        result = score(500, "friend@okaxis")
        assert result.risk_score == 0.05
        assert result.risk_level == "safe"
        assert result.recommendation == "proceed"
        assert result.behavior_flags.newContact is True
        assert result.reasons[0].severity == "info"
        assert result.contact_status == "new"

    def test_known_recipient_passes_all_checks(self):
        history = [TransactionRecord(amount=400, receiver_upi_id="Friend@OkAxis")]
        result = score(500, "friend@okaxis", history=history)
        assert result.risk_score == 0.0
        assert [r.text for r in result.reasons] == ["Standard transaction - all checks passed"]
        assert result.reasons[0].severity == "positive"

    @pytest.mark.parametrize("amount,expected", [(1500, 0.05), (3000, 0.10), (6000, 0.20)])
    def test_new_recipient_tiers(self, amount, expected):
        assert score(amount, "friend@okaxis").risk_score == expected

    def test_large_first_payment_mentions_amount(self):
        result = score(6000, "friend@okaxis")
        assert result.reasons[0].text == "Large first-time transaction (₹6,000) to new recipient"

    def test_late_night_outside_pattern(self):
        result = score(500, "friend@okaxis", hour=2)
        assert result.risk_score == pytest.approx(0.15)
        assert result.behavior_flags.timeAnomaly is True

    def test_late_night_inside_pattern_is_silent(self):
        profile = UserBehaviorProfile(typical_transaction_hours=[2])
        result = score(500, "friend@okaxis", hour=2, profile=profile)
        assert result.behavior_flags.timeAnomaly is False
        assert result.risk_score == 0.05

    def test_new_daytime_hour_needs_established_pattern(self):
        few = UserBehaviorProfile(typical_transaction_hours=[9, 10])
        many = UserBehaviorProfile(typical_transaction_hours=[9, 10, 11, 12, 13, 14])
        assert score(500, "friend@okaxis", hour=20, profile=few).behavior_flags.timeAnomaly is False
        result = score(500, "friend@okaxis", hour=20, profile=many)
        assert result.behavior_flags.timeAnomaly is True
        assert result.risk_score == pytest.approx(0.10)

    def test_repeated_characters_in_provider(self):
        result = score(100, "shop@okkkaxis")
        assert result.behavior_flags.suspiciousUpi is True
        assert result.risk_score == pytest.approx(0.25)

    def test_mostly_numeric_local_part(self):
        result = score(100, "9876543210@ybl")
        assert result.behavior_flags.suspiciousUpi is True
        assert result.risk_score == pytest.approx(0.20)

    def test_scam_keyword(self):
        result = score(100, "cashback.offers@ybl")
        assert result.behavior_flags.suspiciousKeywords is True
        assert result.risk_score == pytest.approx(0.40)
        assert result.risk_level == "warning"

    @pytest.mark.parametrize("amount,delta", [(10_000, 0.08), (25_000, 0.15), (50_000, 0.25)])
    def test_amount_tiers(self, amount, delta):
        history = [TransactionRecord(amount=1, receiver_upi_id="friend@okaxis")]
        assert score(amount, "friend@okaxis", history=history).risk_score == pytest.approx(delta)

    def test_high_amount_is_anomaly(self):
        history = [TransactionRecord(amount=1, receiver_upi_id="friend@okaxis")]
        assert score(25_000, "friend@okaxis", history=history).amount_anomaly is True
        assert score(10_000, "friend@okaxis", history=history).amount_anomaly is False

    def test_double_previous_maximum(self):
        history = [TransactionRecord(amount=1, receiver_upi_id="friend@okaxis")]
        profile = UserBehaviorProfile(max_transaction_amount=1000, typical_transaction_hours=[14])
        result = score(3000, "friend@okaxis", history=history, profile=profile)
        assert result.amount_anomaly is True
        assert result.risk_score == pytest.approx(0.20)
        assert "₹1,000" in result.reasons[0].text

    def test_combined_risk_is_critical(self):
        result = score(100_000, "lottery.winner@ybl", hour=3)
        assert result.risk_score == 1.0
        assert result.risk_level == "critical"
        assert result.recommendation == "block"
        assert result.amount_anomaly is True
        assert result.reasons[-1].text == "Multiple risk factors: suspicious UPI + new contact + high amount"
        assert result.reasons[-1].severity == "critical"


class TestContactAdjustments:
    """Trusted, flagged and look-alike recipients."""

    def test_trusted_contact_lowers_score(self):
        contacts = [TrustedContact(upi_id="rahul@okaxis", contact_name="Rahul", status="trusted")]
        result = score(500, "rahul@okaxis", contacts=contacts)
        assert result.risk_score == 0.0
        assert result.contact_status == "trusted"
        assert result.contact_name == "Rahul"
        assert result.reasons[0].severity == "positive"
        assert result.impersonation_warning is False

    def test_flagged_contact_raises_score(self):
        contacts = [TrustedContact(upi_id="shady@ybl", status="flagged")]
        result = score(500, "shady@ybl", contacts=contacts)
        assert result.risk_score == pytest.approx(0.45)
        assert result.risk_level == "warning"
        assert result.contact_status == "flagged"

    def test_lookalike_contact_is_impersonation(self):
        contacts = [TrustedContact(upi_id="rahul@okaxis", contact_name="Rahul", status="trusted")]
        result = score(500, "rahul1@okaxis", contacts=contacts)
        assert result.impersonation_warning is True
        assert result.similar_contacts == ["rahul@okaxis"]
        assert result.risk_score == pytest.approx(0.30)
        assert result.risk_level == "warning"
        assert result.reasons[-1].text == "UPI ID is similar to trusted contact: Rahul"

    def test_exact_match_is_not_similar(self):
        contacts = [TrustedContact(upi_id="rahul@okaxis", status="trusted")]
        assert find_similar_contacts("RAHUL@okaxis", contacts) == []

    def test_unrelated_contact_is_not_similar(self):
        contacts = [TrustedContact(upi_id="mom@oksbi", status="trusted")]
        assert find_similar_contacts("landlord@ybl", contacts) == []


class TestResultShape:
    def test_score_always_in_range(self):
        for amount in (1, 4999, 5001, 60_000, 9_999_999):
            result = score(amount, "urgent.refund@ybl", hour=1)
            assert 0.0 <= result.risk_score <= 1.0

    def test_profile_stats_reported(self):
        profile = UserBehaviorProfile(
            avg_transaction_amount=750,
            max_transaction_amount=2000,
            transaction_count=3,
            trusted_device_ids=["pixel-7"],
        )
        stats = score(500, "friend@okaxis", profile=profile).profile_stats
        assert stats.avg_amount == 750
        assert stats.transaction_count == 3
        assert stats.known_devices == 1

    def test_no_profile_no_stats(self):
        assert score(500, "friend@okaxis").profile_stats is None

    def test_reasons_carry_no_glyph_prefix(self):
        result = score(100_000, "lottery.winner@ybl", hour=3)
        for reason in result.reasons:
            assert reason.text[0].isalnum()

    def test_blacklisted_result(self):
        entry = BlacklistEntry(upi_id="fraud@ybl", reason="Fake KYC", reported_count=4, severity="critical")
        result = blacklisted_result(entry)
        assert result.is_blacklisted is True
        assert result.risk_score == 1.0
        assert result.recommendation == "block"
        assert result.behavior_flags.isBlacklisted is True
        assert [r.text for r in result.reasons] == [
            "BLOCKED: This UPI ID has been reported as fraudulent",
            "4 fraud reports received",
            "Fake KYC",
        ]
