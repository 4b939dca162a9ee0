"""Tests for the async transaction pipeline and its collaborators."""

import asyncio
import dataclasses

import pytest

from upishield.errors import DependencyError, TransactionValidationError
from upishield.pipelines.transaction_pipeline import analyze_transaction, record_outcome
from upishield.utils.logging_config import metrics


def run(coro):
    return asyncio.run(coro)


class TestAnalyzeTransaction:
    """End-to-end analysis against the in-memory store."""

    def test_trusted_contact_is_safe(self, seeded_store):
        result = run(analyze_transaction("user-1", 500, "rahul@okaxis", seeded_store.dependencies(), hour=10))
        assert result.risk_level == "safe"
        assert result.contact_status == "trusted"
        assert result.profile_stats.transaction_count == 4

    def test_blacklisted_receiver_short_circuits(self, seeded_store):
        before = seeded_store.get_profile("user-1")
        result = run(analyze_transaction("user-1", 500, "Fraud.King@ybl", seeded_store.dependencies(), hour=10))
        assert result.is_blacklisted is True
        assert result.risk_level == "critical"
        assert result.reasons[2].text == "Fake KYC calls"
        # Blocked payments never reach the profile
        assert seeded_store.get_profile("user-1") == before

    def test_profile_updated_after_analysis(self, seeded_store):
        run(analyze_transaction("user-1", 3500, "grocer@paytm", seeded_store.dependencies(), hour=20))
        profile = seeded_store.get_profile("user-1")
        assert profile.transaction_count == 5
        assert profile.max_transaction_amount == 3500
        assert profile.avg_transaction_amount == pytest.approx((900 * 4 + 3500) / 5)
        assert profile.typical_transaction_hours == [9, 10, 11, 18, 20]

    def test_first_analysis_creates_profile(self, store):
        run(analyze_transaction("new-user", 250, "friend@okaxis", store.dependencies(), hour=9))
        profile = store.get_profile("new-user")
        assert profile.transaction_count == 1
        assert profile.typical_transaction_hours == [9]

    def test_invalid_input_raises_before_any_lookup(self, store):
        calls = []

        async def lookup(upi_id):
            calls.append(upi_id)

        deps = dataclasses.replace(store.dependencies(), blacklist_lookup=lookup)
        with pytest.raises(TransactionValidationError):
            run(analyze_transaction("u", -10, "friend@okaxis", deps, hour=9))
        assert calls == []

    def test_failing_profile_update_is_tolerated(self, store):
        async def broken_updater(user_id, amount, hour):
            raise RuntimeError("database is locked")

        deps = dataclasses.replace(store.dependencies(), profile_updater=broken_updater)
        result = run(analyze_transaction("u", 500, "friend@okaxis", deps, hour=12))
        assert result.risk_level == "safe"

    def test_failing_read_propagates(self, store):
        async def broken_reader(user_id):
            raise DependencyError("recent_transactions", "connection refused")

        deps = dataclasses.replace(store.dependencies(), recent_transactions=broken_reader)
        with pytest.raises(DependencyError):
            run(analyze_transaction("u", 500, "friend@okaxis", deps, hour=12))

    def test_metrics_track_outcomes(self, store):
        metrics.reset()
        run(analyze_transaction("u", 100_000, "lottery.winner@ybl", store.dependencies(), hour=3))
        counters = metrics.get_stats()["counters"]
        assert counters["analysis.transaction.total"] == 1
        assert counters["analysis.transaction.risk.critical"] == 1


class TestRecordOutcome:
    def test_success(self, store):
        assert run(record_outcome(store.dependencies(), "u", 100, 8)) is True
        assert store.get_profile("u").transaction_count == 1

    def test_failure_returns_false(self, store):
        async def broken_updater(user_id, amount, hour):
            raise RuntimeError("boom")

        deps = dataclasses.replace(store.dependencies(), profile_updater=broken_updater)
        assert run(record_outcome(deps, "u", 100, 8)) is False


class TestConcurrentUpdates:
    def test_parallel_updates_are_all_counted(self, store):
        async def burst():
            await asyncio.gather(*[store.update_profile("u", 100 * (i + 1), i) for i in range(10)])

        run(burst())
        profile = store.get_profile("u")
        assert profile.transaction_count == 10
        assert profile.max_transaction_amount == 1000
