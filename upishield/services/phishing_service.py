"""
URL phishing analyzer.

Validates the URL, runs independent structural and domain heuristics and
aggregates them by hit count. Pure and synchronous: the same
(url, is_blacklisted) pair always yields the same analysis.
"""

import re
from typing import List, Optional, Tuple

from upishield.schemas.analyze_schemas import DomainAnalysis, PhishingAnalysis, RiskFactor
from upishield.services.threat_tables import (
    NON_ASCII_HOMOGLYPHS,
    SAFE_TLDS,
    TARGETED_BRANDS,
    URL_SHORTENERS,
)
from upishield.services.url_validation import validate_and_normalize
from upishield.utils.risk_levels import url_risk_from_hits
from upishield.utils.similarity import levenshtein_distance

NON_ASCII_RE = re.compile(r"[^\x00-\x7f]")


def _blacklisted_result(url: str) -> PhishingAnalysis:
    return PhishingAnalysis(
        is_phishing=True,
        risk_score=1.0,
        risk_category="critical",
        threat_type="phishing",
        indicators=["Blacklisted Domain"],
        factors=[
            RiskFactor(
                name="Blacklisted Domain",
                impact=1.0,
                description="This domain is in the database of known phishing sites.",
                category="blacklist",
            )
        ],
        domain_analysis=DomainAnalysis(
            domain=url,
            legitimate_domain=None,
            is_suspicious_tld=True,
            has_valid_ssl="unknown",
        ),
        recommendation="block",
        explanation="CRITICAL: This URL is blacklisted as a phishing site.",
    )


def _invalid_result(url: str, error: str) -> PhishingAnalysis:
    return PhishingAnalysis(
        is_phishing=True,
        risk_score=1.0,
        risk_category="critical",
        threat_type="unknown",
        indicators=["Invalid URL"],
        factors=[
            RiskFactor(
                name="Validation Failed",
                impact=1.0,
                description=error,
                category="technical",
            )
        ],
        domain_analysis=DomainAnalysis(
            domain=url,
            legitimate_domain=None,
            is_suspicious_tld=False,
            has_valid_ssl=False,
        ),
        recommendation="block",
        explanation=f"Status: Invalid URL. Reason: {error}",
    )


def top_level_domain(domain: str) -> str:
    """Final label of the domain with a leading dot."""
    return "." + domain.split(".")[-1]


def second_level_label(domain: str) -> str:
    labels = domain.split(".")
    return labels[-2] if len(labels) >= 2 else domain


def is_obfuscated(domain: str) -> bool:
    """Punycode, non-ASCII characters or non-ASCII homoglyphs in the domain."""
    if domain.startswith("xn--"):
        return True
    if NON_ASCII_RE.search(domain):
        return True
    return any(ch in domain for ch in NON_ASCII_HOMOGLYPHS)


def _is_official_brand_domain(domain: str, brand: str) -> bool:
    return (
        domain in (f"{brand}.com", f"{brand}.in")
        or domain.endswith(f".{brand}.com")
        or domain.endswith(f".{brand}.in")
    )


def detect_brand_impersonation(domain: str) -> Optional[Tuple[str, RiskFactor]]:
    """
    Return the first targeted brand the domain imitates, with its factor.

    A second-level label one or two edits away from a brand longer than three
    characters is typosquatting; a label that merely contains the brand is
    suspect usage.
    """
    sld = second_level_label(domain)

    for brand in TARGETED_BRANDS:
        if _is_official_brand_domain(domain, brand):
            continue

        distance = levenshtein_distance(sld, brand)
        if 1 <= distance <= 2 and len(brand) > 3:
            return brand, RiskFactor(
                name="Brand Typosquatting",
                impact=0.95,
                description=f"URL impersonates '{brand}' with a minor spelling variation ('{sld}').",
                category="domain",
            )
        if brand in sld and sld != brand:
            return brand, RiskFactor(
                name="Suspect Brand Usage",
                impact=0.9,
                description=f"URL contains the brand name '{brand}' but is not a verified official link.",
                category="domain",
            )

    return None


def build_explanation(risk_category: str, factors: List[RiskFactor]) -> str:
    hits = len(factors)
    plural = "" if hits == 1 else "s"
    names = ", ".join(f.name for f in factors)
    return (
        f"Analysis Result: {risk_category.upper()}. "
        f"Hits: {hits} suspicious parameter{plural} detected. {names}"
    ).strip()


def analyze_url(url: str, is_blacklisted: bool = False) -> PhishingAnalysis:
    """
    Analyze a URL for phishing risk.

    Args:
        url: Raw URL as entered or scanned by the user
        is_blacklisted: Whether the domain is already on a phishing blacklist

    Returns:
        PhishingAnalysis whose category and recommendation depend only on
        the number of triggered heuristics.
    """
    if is_blacklisted:
        return _blacklisted_result(url)

    validation = validate_and_normalize(url)
    if not validation.ok:
        return _invalid_result(url, validation.error or "URL failed strict validation checks.")

    domain = validation.normalized_domain
    factors: List[RiskFactor] = []

    # 1) Insecure protocol
    if validation.protocol == "http":
        factors.append(RiskFactor(
            name="Insecure Protocol",
            impact=0.8,
            description="The website does not use HTTPS encryption, so submitted data can be intercepted.",
            category="technical",
        ))

    # 2) Untrusted TLD
    tld = top_level_domain(domain)
    suspicious_tld = tld not in SAFE_TLDS
    if suspicious_tld:
        factors.append(RiskFactor(
            name="Untrusted TLD",
            impact=0.8,
            description=f"The domain extension {tld} is not a standard trusted TLD (.com, .in, etc).",
            category="domain",
        ))

    # 3) Visual obfuscation
    if is_obfuscated(domain):
        factors.append(RiskFactor(
            name="Visual Obfuscation",
            impact=0.9,
            description=(
                "URL contains characters that look like English letters but are not "
                "(homoglyphs) or uses Punycode encoding."
            ),
            category="domain",
        ))

    # 4) Brand impersonation
    detected_brand: Optional[str] = None
    impersonation = detect_brand_impersonation(domain)
    if impersonation:
        detected_brand, factor = impersonation
        factors.append(factor)

    # 5) URL shortener
    if domain in URL_SHORTENERS:
        factors.append(RiskFactor(
            name="URL Shortener",
            impact=0.7,
            description="The link uses a URL shortener which hides the final destination.",
            category="url_structure",
        ))

    hits = len(factors)
    risk_score, risk_category, recommendation = url_risk_from_hits(hits)

    if detected_brand:
        threat_type = "phishing"
    elif hits >= 3:
        threat_type = "scam"
    else:
        threat_type = "safe"

    return PhishingAnalysis(
        is_phishing=hits >= 2,
        risk_score=risk_score,
        risk_category=risk_category,
        threat_type=threat_type,
        indicators=[f.name for f in factors],
        factors=factors,
        domain_analysis=DomainAnalysis(
            domain=domain,
            legitimate_domain=detected_brand,
            is_suspicious_tld=suspicious_tld,
            has_valid_ssl=validation.protocol == "https",
        ),
        recommendation=recommendation,
        explanation=build_explanation(risk_category, factors),
    )
