import asyncio
from typing import Optional

from upishield.schemas.analyze_schemas import CompletedTransactionAssessment, TransactionAnalysisResult
from upishield.services.store_service import TransactionDependencies
from upishield.services.transaction_service import (
    blacklisted_result,
    score_completed_transaction,
    score_transaction,
    validate_transaction_input,
)
from upishield.utils.logging_config import StructuredLogger, track_analysis

logger = StructuredLogger(__name__)


async def record_outcome(deps: TransactionDependencies, user_id: str, amount: float, hour: int) -> bool:
    """
    Fold the analyzed transaction into the user's behavior profile.

    Best effort: a failed write is logged and reported as False, never raised.
    """
    try:
        await deps.profile_updater(user_id, amount, hour)
    except Exception as e:
        logger.error(
            "Behavior profile update failed",
            user_id=user_id,
            error=str(e),
            exc_info=True,
        )
        return False
    return True


@track_analysis("transaction")
async def analyze_transaction(
    user_id: str,
    amount: float,
    receiver_upi: str,
    deps: TransactionDependencies,
    hour: Optional[int] = None,
) -> TransactionAnalysisResult:
    """
    Main pre-transaction pipeline for /transactions/analyze.

    1. Validate the candidate payment (raises TransactionValidationError)
    2. Blacklisted receivers are blocked outright, without a profile update
    3. History, profile and contacts are fetched concurrently and scored
    4. The behavior profile is updated (awaited, failures tolerated)
    """
    hour = validate_transaction_input(amount, receiver_upi, hour)

    entry = await deps.blacklist_lookup(receiver_upi.lower())
    if entry is not None:
        logger.warning(
            "Blacklisted receiver blocked",
            user_id=user_id,
            receiver=receiver_upi,
            reported_count=entry.reported_count,
        )
        return blacklisted_result(entry)

    recent, profile, contacts = await asyncio.gather(
        deps.recent_transactions(user_id),
        deps.behavior_profile(user_id),
        deps.trusted_contacts(user_id),
    )

    result = score_transaction(
        amount=amount,
        receiver_upi=receiver_upi,
        hour=hour,
        recent_transactions=recent,
        profile=profile,
        trusted_contacts=contacts,
    )

    await record_outcome(deps, user_id, amount, hour)

    logger.info(
        "Transaction analyzed",
        user_id=user_id,
        risk_level=result.risk_level,
        risk_score=result.risk_score,
        reasons=len(result.reasons),
    )
    return result


async def assess_completed_transaction(
    user_id: str,
    amount: float,
    receiver_upi: str,
    deps: TransactionDependencies,
) -> CompletedTransactionAssessment:
    """Score a payment that has already been made, before it joins the history."""
    entry, history, contacts = await asyncio.gather(
        deps.blacklist_lookup(receiver_upi.lower()),
        deps.recent_transactions(user_id),
        deps.trusted_contacts(user_id),
    )
    assessment = score_completed_transaction(
        amount=amount,
        receiver_upi=receiver_upi,
        history=history,
        trusted_contacts=contacts,
        blacklist_entry=entry,
    )
    if assessment.is_anomaly:
        logger.warning(
            "Completed transaction flagged",
            user_id=user_id,
            risk_score=assessment.risk_score,
            fraud_category=assessment.fraud_category,
        )
    return assessment
