"""
Risk level utilities.

URL scans are bucketed by the number of triggered heuristics; transactions
are bucketed by their clamped score. Both tables are total: every input maps
to exactly one level.
"""

from typing import Tuple

# (upper bound exclusive, level, recommendation)
TRANSACTION_THRESHOLDS = (
    (0.30, "safe", "proceed"),
    (0.60, "warning", "caution"),
    (0.80, "danger", "avoid"),
)


def clamp_score(score: float) -> float:
    """Clamp a score into [0, 1]."""
    return max(0.0, min(1.0, score))


def url_risk_from_hits(hits: int) -> Tuple[float, str, str]:
    """
    Map a heuristic hit count to (risk_score, risk_category, recommendation).

    The score is a step function of the count; factor impacts never
    contribute to it.
    """
    if hits >= 4:
        return clamp_score(0.9 + hits * 0.02), "critical", "block"
    if hits == 3:
        return 0.75, "dangerous", "block"
    if hits == 2:
        return 0.45, "suspicious", "caution"
    return 0.05, "safe", "safe"


def transaction_risk_from_score(score: float) -> Tuple[str, str]:
    """Map a clamped transaction score to (risk_level, recommendation)."""
    for upper, level, recommendation in TRANSACTION_THRESHOLDS:
        if score < upper:
            return level, recommendation
    return "critical", "block"
