"""
Collaborator contracts for the transaction analyzer, plus an in-memory store.

The analyzer never talks to storage directly; it receives a
TransactionDependencies bundle of coroutines and awaits them.
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from upishield.config import settings
from upishield.schemas.analyze_schemas import (
    BlacklistEntry,
    TransactionRecord,
    TrustedContact,
    UserBehaviorProfile,
)
from upishield.services.lists_service import PhishingDomainList, UpiBlacklist
from upishield.services.transaction_service import apply_transaction_to_profile

BlacklistLookup = Callable[[str], Awaitable[Optional[BlacklistEntry]]]
RecentTransactions = Callable[[str], Awaitable[List[TransactionRecord]]]
BehaviorProfileReader = Callable[[str], Awaitable[Optional[UserBehaviorProfile]]]
TrustedContactsReader = Callable[[str], Awaitable[List[TrustedContact]]]
ProfileUpdater = Callable[[str, float, int], Awaitable[None]]


@dataclass(frozen=True)
class TransactionDependencies:
    """Resolved collaborators handed to analyze_transaction."""
    blacklist_lookup: BlacklistLookup
    recent_transactions: RecentTransactions
    behavior_profile: BehaviorProfileReader
    trusted_contacts: TrustedContactsReader
    profile_updater: ProfileUpdater


class InMemoryStore:
    """
    Dictionary-backed implementation of every collaborator.

    Used by tests and local demos. Profile updates are serialized per user
    with an asyncio lock.
    """

    def __init__(self):
        self.upi_blacklist = UpiBlacklist()
        self.phishing_domains = PhishingDomainList()
        self._profiles: Dict[str, UserBehaviorProfile] = {}
        self._contacts: Dict[str, List[TrustedContact]] = defaultdict(list)
        self._transactions: Dict[str, List[TransactionRecord]] = defaultdict(list)
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ---------- seeding helpers ----------

    def add_contact(self, user_id: str, contact: TrustedContact):
        self._contacts[user_id].append(contact)

    def add_transaction(self, user_id: str, record: TransactionRecord):
        if record.created_at is None:
            record = record.model_copy(update={"created_at": datetime.now(timezone.utc)})
        self._transactions[user_id].insert(0, record)

    def set_profile(self, user_id: str, profile: UserBehaviorProfile):
        self._profiles[user_id] = profile

    def get_profile(self, user_id: str) -> Optional[UserBehaviorProfile]:
        return self._profiles.get(user_id)

    # ---------- collaborator coroutines ----------

    async def blacklist_lookup(self, upi_id: str) -> Optional[BlacklistEntry]:
        return self.upi_blacklist.lookup(upi_id)

    async def recent_transactions(self, user_id: str) -> List[TransactionRecord]:
        return list(self._transactions[user_id][: settings.recent_transaction_limit])

    async def behavior_profile(self, user_id: str) -> Optional[UserBehaviorProfile]:
        return self._profiles.get(user_id)

    async def trusted_contacts(self, user_id: str) -> List[TrustedContact]:
        return list(self._contacts[user_id])

    async def update_profile(self, user_id: str, amount: float, hour: int) -> None:
        async with self._locks[user_id]:
            self._profiles[user_id] = apply_transaction_to_profile(
                self._profiles.get(user_id), amount, hour
            )

    async def is_domain_blacklisted(self, domain: str) -> bool:
        return self.phishing_domains.contains(domain)

    def add_phishing_domain(self, domain: str, source: str = "admin") -> bool:
        if self.phishing_domains.contains(domain):
            return False
        return self.phishing_domains.add(domain, source)

    def dependencies(self) -> TransactionDependencies:
        return TransactionDependencies(
            blacklist_lookup=self.blacklist_lookup,
            recent_transactions=self.recent_transactions,
            behavior_profile=self.behavior_profile,
            trusted_contacts=self.trusted_contacts,
            profile_updater=self.update_profile,
        )
