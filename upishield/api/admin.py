"""
Admin API endpoints for UPIShield management.

Includes:
- UPI blacklist reporting and removal
- Known phishing-domain management
- Metrics and monitoring
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from upishield.api.deps import get_store
from upishield.api.security import verify_api_token
from upishield.schemas.analyze_schemas import BlacklistEntry, BlacklistSeverity
from upishield.services.sql_store import SqlStore
from upishield.utils.logging_config import StructuredLogger, metrics

logger = StructuredLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(verify_api_token)],
)


# ============== SCHEMAS ==============


class ReportUpiRequest(BaseModel):
    upi_id: str
    reason: Optional[str] = None
    severity: BlacklistSeverity = "medium"
    source: str = "user_report"
    added_by: Optional[str] = None


class DomainRequest(BaseModel):
    domain: str


# ============== UPI BLACKLIST ENDPOINTS ==============


@router.post("/blacklist/upi", response_model=BlacklistEntry)
async def report_upi(request: ReportUpiRequest, store: SqlStore = Depends(get_store)):
    """Blacklist a UPI id, or count one more report against an existing entry."""
    if "@" not in request.upi_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="upi_id must look like name@provider",
        )

    entry = store.report_upi(
        upi_id=request.upi_id,
        reason=request.reason,
        severity=request.severity,
        source=request.source,
        added_by=request.added_by,
    )
    logger.info(
        "UPI id reported",
        upi_id=entry.upi_id,
        reported_count=entry.reported_count,
        severity=entry.severity,
    )
    metrics.increment("blacklist.upi.reports")
    return entry


@router.delete("/blacklist/upi/{upi_id}")
async def remove_upi(upi_id: str, store: SqlStore = Depends(get_store)):
    if not store.remove_upi(upi_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{upi_id} is not blacklisted",
        )
    return {"message": "Removed from blacklist", "upi_id": upi_id.lower()}


@router.get("/blacklist/upi", response_model=List[BlacklistEntry])
async def list_upi_blacklist(
    limit: int = Query(100, ge=1, le=1000),
    store: SqlStore = Depends(get_store),
):
    return store.list_blacklist(limit=limit)


# ============== PHISHING DOMAIN ENDPOINTS ==============


@router.post("/domains")
async def add_phishing_domain(request: DomainRequest, store: SqlStore = Depends(get_store)):
    """Add a domain to the known phishing list. Subdomains match as well."""
    domain = request.domain.strip().lower()
    if not domain or "." not in domain:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A fully qualified domain is required",
        )

    added = store.add_phishing_domain(domain, source="admin")
    return {
        "message": "Added to phishing domains" if added else "Domain already listed",
        "domain": domain,
        "added": added,
    }


@router.delete("/domains/{domain}")
async def remove_phishing_domain(domain: str, store: SqlStore = Depends(get_store)):
    if not store.remove_phishing_domain(domain):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{domain} is not listed",
        )
    return {"message": "Removed from phishing domains", "domain": domain.lower()}


@router.get("/domains")
async def list_phishing_domains(store: SqlStore = Depends(get_store)):
    domains = store.list_phishing_domains()
    return {"domains": domains, "count": len(domains)}


# ============== METRICS ENDPOINTS ==============


@router.get("/metrics")
async def get_metrics():
    """Get current application metrics."""
    return metrics.get_stats()


@router.post("/metrics/reset")
async def reset_metrics():
    metrics.reset()
    return {"message": "Metrics reset"}
