from typing import Awaitable, Callable, Optional

from upishield.config import settings
from upishield.schemas.analyze_schemas import PhishingAnalysis
from upishield.services.phishing_service import analyze_url
from upishield.services.url_validation import validate_and_normalize
from upishield.utils.logging_config import StructuredLogger, track_analysis

logger = StructuredLogger(__name__)

DomainCheck = Callable[[str], Awaitable[bool]]
DomainRecorder = Callable[[str, str], bool]


@track_analysis("url", level_field="risk_category")
async def scan_url(
    url: str,
    is_domain_blacklisted: DomainCheck,
    add_phishing_domain: Optional[DomainRecorder] = None,
) -> PhishingAnalysis:
    """
    Main URL pipeline for /scan/url.

    Looks the normalized domain up on the phishing-domain list, then runs the
    heuristic analyzer. Invalid URLs skip the lookup; the analyzer blocks them
    anyway. When auto-blacklisting is enabled, domains scored critical are
    added to the list for future scans.
    """
    validation = validate_and_normalize(url)

    is_blacklisted = False
    if validation.ok:
        is_blacklisted = await is_domain_blacklisted(validation.normalized_domain)

    analysis = analyze_url(url, is_blacklisted=is_blacklisted)

    logger.info(
        "URL scanned",
        domain=validation.normalized_domain or None,
        risk_category=analysis.risk_category,
        hits=len(analysis.factors) if validation.ok and not is_blacklisted else None,
        blacklisted=is_blacklisted,
    )

    if (
        settings.auto_blacklist_critical_domains
        and add_phishing_domain is not None
        and validation.ok
        and not is_blacklisted
        and analysis.risk_category == "critical"
    ):
        if add_phishing_domain(validation.normalized_domain, "auto_scan"):
            logger.warning("Auto-added domain to phishing list", domain=validation.normalized_domain)

    return analysis
