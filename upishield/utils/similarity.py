"""
String distance helpers shared by the URL and transaction analyzers.
"""

from rapidfuzz.distance import Levenshtein


def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance used for typosquatting and look-alike contact detection."""
    return Levenshtein.distance(s1, s2)


def calculate_similarity(str1: str, str2: str) -> float:
    """
    Case-insensitive normalized similarity in [0, 1].

    Identical strings score 1.0; an empty side scores 0.0.
    """
    s1 = str1.lower()
    s2 = str2.lower()

    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    return Levenshtein.normalized_similarity(s1, s2)
