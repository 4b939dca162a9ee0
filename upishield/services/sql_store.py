"""
SQLAlchemy-backed collaborators for the analyzers.

The collaborator coroutines run their blocking queries in worker threads,
each with its own short-lived session, so the transaction pipeline's gather
overlaps them. Management calls used by the API are plain synchronous methods.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from upishield.config import settings
from upishield.errors import DependencyError
from upishield.models.analysis import PhishingScan
from upishield.models.behavior import BehaviorProfile, TransactionLog, TrustedContactRecord
from upishield.models.blacklist import PhishingDomain, UpiBlacklistEntry
from upishield.schemas.analyze_schemas import (
    BlacklistEntry,
    PhishingAnalysis,
    ScanHistoryItem,
    TransactionRecord,
    TrustedContact,
    UserBehaviorProfile,
)
from upishield.services.lists_service import escalate_severity
from upishield.services.store_service import TransactionDependencies
from upishield.services.transaction_service import apply_transaction_to_profile


class SqlStore:
    """Database implementation of the blacklist, history, profile and contact stores."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    # ============== READS USED BY THE ANALYZER ==============

    async def _off_loop(self, dependency: str, fn, *args):
        """Run a blocking query in a worker thread; database errors become DependencyError."""
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as e:
            raise DependencyError(dependency, str(e)) from e

    def _blacklist_entry(self, upi_id: str) -> Optional[BlacklistEntry]:
        with self._session_factory() as db:
            row = db.query(UpiBlacklistEntry).filter(UpiBlacklistEntry.upi_id == upi_id.lower()).first()
            return BlacklistEntry.model_validate(row) if row else None

    def _recent_transactions(self, user_id: str) -> List[TransactionRecord]:
        with self._session_factory() as db:
            rows = (
                db.query(TransactionLog)
                .filter(TransactionLog.user_id == user_id)
                .order_by(TransactionLog.created_at.desc(), TransactionLog.id.desc())
                .limit(settings.recent_transaction_limit)
                .all()
            )
            return [TransactionRecord.model_validate(r) for r in rows]

    def _behavior_profile(self, user_id: str) -> Optional[UserBehaviorProfile]:
        with self._session_factory() as db:
            row = db.query(BehaviorProfile).filter(BehaviorProfile.user_id == user_id).first()
            return UserBehaviorProfile.model_validate(row) if row else None

    def _trusted_contacts(self, user_id: str) -> List[TrustedContact]:
        with self._session_factory() as db:
            rows = db.query(TrustedContactRecord).filter(TrustedContactRecord.user_id == user_id).all()
            return [TrustedContact.model_validate(r) for r in rows]

    def _upsert_profile(self, user_id: str, amount: float, hour: int):
        with self._session_factory() as db:
            row = db.query(BehaviorProfile).filter(BehaviorProfile.user_id == user_id).first()
            current = UserBehaviorProfile.model_validate(row) if row else None
            updated = apply_transaction_to_profile(current, amount, hour)

            if row is None:
                row = BehaviorProfile(user_id=user_id)
                db.add(row)

            row.avg_transaction_amount = updated.avg_transaction_amount
            row.max_transaction_amount = updated.max_transaction_amount
            row.std_dev_amount = updated.std_dev_amount
            row.transaction_count = updated.transaction_count
            row.typical_transaction_hours = list(updated.typical_transaction_hours)
            row.last_transaction_at = updated.last_transaction_at
            db.commit()

    def _domain_listed(self, domain: str) -> bool:
        labels = domain.lower().split(".")
        # The domain itself and every parent domain
        candidates = [".".join(labels[i:]) for i in range(len(labels) - 1)] or [domain.lower()]
        with self._session_factory() as db:
            return db.query(PhishingDomain).filter(PhishingDomain.domain.in_(candidates)).first() is not None

    async def blacklist_lookup(self, upi_id: str) -> Optional[BlacklistEntry]:
        return await self._off_loop("blacklist_lookup", self._blacklist_entry, upi_id)

    async def recent_transactions(self, user_id: str) -> List[TransactionRecord]:
        return await self._off_loop("recent_transactions", self._recent_transactions, user_id)

    async def behavior_profile(self, user_id: str) -> Optional[UserBehaviorProfile]:
        return await self._off_loop("behavior_profile", self._behavior_profile, user_id)

    async def trusted_contacts(self, user_id: str) -> List[TrustedContact]:
        return await self._off_loop("trusted_contacts", self._trusted_contacts, user_id)

    async def update_profile(self, user_id: str, amount: float, hour: int) -> None:
        """Upsert the user's behavior profile with one more transaction."""
        await asyncio.to_thread(self._upsert_profile, user_id, amount, hour)

    def dependencies(self) -> TransactionDependencies:
        return TransactionDependencies(
            blacklist_lookup=self.blacklist_lookup,
            recent_transactions=self.recent_transactions,
            behavior_profile=self.behavior_profile,
            trusted_contacts=self.trusted_contacts,
            profile_updater=self.update_profile,
        )

    # ============== PHISHING DOMAINS ==============

    async def is_domain_blacklisted(self, domain: str) -> bool:
        return await self._off_loop("phishing_domains", self._domain_listed, domain)

    def add_phishing_domain(self, domain: str, source: str = "admin") -> bool:
        """Add a domain; returns False when it was already listed."""
        with self._session_factory() as db:
            domain = domain.lower()
            if db.query(PhishingDomain).filter(PhishingDomain.domain == domain).first():
                return False
            db.add(PhishingDomain(domain=domain, source=source))
            db.commit()
            return True

    def remove_phishing_domain(self, domain: str) -> bool:
        with self._session_factory() as db:
            deleted = db.query(PhishingDomain).filter(PhishingDomain.domain == domain.lower()).delete()
            db.commit()
            return deleted > 0

    def list_phishing_domains(self) -> List[str]:
        with self._session_factory() as db:
            return [d for (d,) in db.query(PhishingDomain.domain).order_by(PhishingDomain.domain).all()]

    # ============== UPI BLACKLIST MANAGEMENT ==============

    def report_upi(
        self,
        upi_id: str,
        reason: Optional[str] = None,
        severity: str = "medium",
        source: str = "user_report",
        added_by: Optional[str] = None,
    ) -> BlacklistEntry:
        """Add a UPI id to the blacklist, or count one more report against it."""
        with self._session_factory() as db:
            key = upi_id.lower()
            row = db.query(UpiBlacklistEntry).filter(UpiBlacklistEntry.upi_id == key).first()
            if row:
                row.severity = escalate_severity(row.reported_count, severity)
                row.reported_count = row.reported_count + 1
            else:
                row = UpiBlacklistEntry(
                    upi_id=key,
                    reason=reason,
                    severity=severity,
                    source=source,
                    added_by=added_by,
                    reported_count=1,
                )
                db.add(row)
            db.commit()
            db.refresh(row)
            return BlacklistEntry.model_validate(row)

    def remove_upi(self, upi_id: str) -> bool:
        with self._session_factory() as db:
            deleted = db.query(UpiBlacklistEntry).filter(UpiBlacklistEntry.upi_id == upi_id.lower()).delete()
            db.commit()
            return deleted > 0

    def list_blacklist(self, limit: int = 100) -> List[BlacklistEntry]:
        with self._session_factory() as db:
            rows = (
                db.query(UpiBlacklistEntry)
                .order_by(UpiBlacklistEntry.created_at.desc(), UpiBlacklistEntry.id.desc())
                .limit(limit)
                .all()
            )
            return [BlacklistEntry.model_validate(r) for r in rows]

    # ============== CONTACTS & TRANSACTIONS ==============

    def save_contact(self, user_id: str, contact: TrustedContact) -> TrustedContact:
        """Insert a contact or update the status/name of an existing one."""
        with self._session_factory() as db:
            row = (
                db.query(TrustedContactRecord)
                .filter(
                    TrustedContactRecord.user_id == user_id,
                    TrustedContactRecord.upi_id == contact.upi_id,
                )
                .first()
            )
            if row is None:
                row = TrustedContactRecord(user_id=user_id, upi_id=contact.upi_id)
                db.add(row)
            row.contact_name = contact.contact_name
            row.status = contact.status
            db.commit()
            db.refresh(row)
            return TrustedContact.model_validate(row)

    def record_transaction(
        self,
        user_id: str,
        amount: float,
        receiver_upi: str,
        hour: Optional[int] = None,
        risk_score: Optional[float] = None,
        fraud_category: Optional[str] = None,
    ) -> TransactionRecord:
        with self._session_factory() as db:
            row = TransactionLog(
                user_id=user_id,
                amount=amount,
                receiver_upi_id=receiver_upi,
                transaction_hour=hour,
                risk_score=risk_score,
                fraud_category=fraud_category,
                created_at=datetime.now(timezone.utc),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return TransactionRecord.model_validate(row)

    # ============== SCAN HISTORY ==============

    def save_scan(self, url: str, analysis: PhishingAnalysis, user_id: Optional[str] = None) -> int:
        with self._session_factory() as db:
            scan = PhishingScan(
                user_id=user_id,
                url=url,
                domain=analysis.domain_analysis.domain,
                risk_score=analysis.risk_score,
                risk_category=analysis.risk_category,
                is_phishing=analysis.is_phishing,
                analysis_result=analysis.model_dump(mode="json"),
            )
            db.add(scan)
            db.commit()
            db.refresh(scan)
            return scan.id

    def list_scans(self, user_id: Optional[str] = None, limit: int = 50) -> List[ScanHistoryItem]:
        with self._session_factory() as db:
            query = db.query(PhishingScan)
            if user_id:
                query = query.filter(PhishingScan.user_id == user_id)
            rows = query.order_by(PhishingScan.created_at.desc(), PhishingScan.id.desc()).limit(limit).all()
            return [ScanHistoryItem.model_validate(r) for r in rows]
