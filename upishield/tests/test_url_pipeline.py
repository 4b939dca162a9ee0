"""Tests for the async URL scan pipeline."""

import asyncio

from upishield.config import settings
from upishield.pipelines.url_pipeline import scan_url


class TestScanUrl:

    def test_listed_domain_blocked(self, store):
        store.add_phishing_domain("paytm-kyc.xyz")
        result = asyncio.run(scan_url("https://www.paytm-kyc.xyz/x", store.is_domain_blacklisted))
        assert result.indicators == ["Blacklisted Domain"]

    def test_invalid_url_skips_lookup(self, store):
        seen = []

        async def lookup(domain):
            seen.append(domain)
            return False

        result = asyncio.run(scan_url("ww.amazon.in", lookup))
        assert seen == []
        assert result.risk_category == "critical"

    def test_critical_domain_auto_added_when_enabled(self, store, monkeypatch):
        monkeypatch.setattr(settings, "auto_blacklist_critical_domains", True)
        asyncio.run(scan_url("http://bit.ly/x", store.is_domain_blacklisted, store.add_phishing_domain))
        assert store.phishing_domains.contains("bit.ly") is True
        assert store.phishing_domains.source_of("bit.ly") == "auto_scan"

    def test_lower_categories_never_auto_added(self, store, monkeypatch):
        monkeypatch.setattr(settings, "auto_blacklist_critical_domains", True)
        asyncio.run(scan_url("http://ow.ly/x", store.is_domain_blacklisted, store.add_phishing_domain))
        assert store.phishing_domains.domains() == []
