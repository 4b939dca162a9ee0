"""
In-memory blacklists.

Known fraudulent UPI ids (with report counting) and known phishing domains
(exact entries and their subdomains) for instant classification.
"""

from typing import Dict, List, Optional

from upishield.config import settings
from upishield.schemas.analyze_schemas import BlacklistEntry


def escalate_severity(reported_count: int, requested: str, threshold: Optional[int] = None) -> str:
    """Severity after a repeat report: critical once the count reaches the threshold."""
    threshold = threshold if threshold is not None else settings.blacklist_critical_report_count
    return "critical" if reported_count >= threshold else requested


class UpiBlacklist:
    """
    Reported UPI ids keyed case-insensitively.

    Reporting an id already on the list increments its report count instead
    of adding a duplicate.
    """

    def __init__(self):
        self._entries: Dict[str, BlacklistEntry] = {}

    def lookup(self, upi_id: str) -> Optional[BlacklistEntry]:
        return self._entries.get(upi_id.lower())

    def report(
        self,
        upi_id: str,
        reason: Optional[str] = None,
        severity: str = "medium",
        source: str = "user_report",
    ) -> BlacklistEntry:
        key = upi_id.lower()
        existing = self._entries.get(key)

        if existing:
            entry = existing.model_copy(update={
                "reported_count": existing.reported_count + 1,
                "severity": escalate_severity(existing.reported_count, severity),
            })
        else:
            entry = BlacklistEntry(
                upi_id=key,
                reason=reason,
                severity=severity,
                source=source,
            )

        self._entries[key] = entry
        return entry

    def remove(self, upi_id: str) -> bool:
        return self._entries.pop(upi_id.lower(), None) is not None

    def entries(self) -> List[BlacklistEntry]:
        return list(self._entries.values())


class PhishingDomainList:
    """
    Known phishing domains with where each entry came from.

    A domain matches an exact entry or any of its subdomains.
    """

    def __init__(self):
        self._domains: Dict[str, str] = {}

    def add(self, domain: str, source: str = "admin") -> bool:
        """Add a domain; returns False when it was already listed."""
        key = domain.lower()
        if key in self._domains:
            return False
        self._domains[key] = source
        return True

    def remove(self, domain: str) -> bool:
        return self._domains.pop(domain.lower(), None) is not None

    def contains(self, domain: str) -> bool:
        domain = domain.lower()
        return domain in self._domains or any(domain.endswith("." + d) for d in self._domains)

    def source_of(self, domain: str) -> Optional[str]:
        return self._domains.get(domain.lower())

    def domains(self) -> List[str]:
        return sorted(self._domains)
