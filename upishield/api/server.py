import uuid
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from upishield.api.admin import router as admin_router
from upishield.api.deps import get_store
from upishield.api.security import check_rate_limit, verify_api_token
from upishield.config import settings
from upishield.database import Base, engine
from upishield.errors import DependencyError, TransactionValidationError
from upishield.models import analysis, behavior, blacklist  # noqa: F401  registers tables
from upishield.pipelines.transaction_pipeline import analyze_transaction, assess_completed_transaction
from upishield.pipelines.url_pipeline import scan_url
from upishield.schemas.analyze_schemas import (
    ContactCreateRequest,
    PhishingAnalysis,
    RecordedTransaction,
    ScanHistoryItem,
    TransactionAnalysisRequest,
    TransactionAnalysisResult,
    TransactionCreateRequest,
    TrustedContact,
    UrlScanRequest,
)
from upishield.services.sql_store import SqlStore
from upishield.services.transaction_service import validate_transaction_input
from upishield.utils.logging_config import StructuredLogger, init_logging, request_id_var

init_logging()

logger = StructuredLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="UPIShield API",
    version="0.1.0",
    description="Phishing URL and UPI transaction risk analysis",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


@app.middleware("http")
async def add_rate_limit_headers(request: Request, call_next):
    response = await call_next(request)
    if hasattr(request.state, "rate_limit_remaining"):
        response.headers["X-RateLimit-Limit"] = str(request.state.rate_limit_limit)
        response.headers["X-RateLimit-Remaining"] = str(request.state.rate_limit_remaining)
    return response


@app.middleware("http")
async def bind_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(TransactionValidationError)
async def transaction_validation_handler(request: Request, exc: TransactionValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": exc.message, "field": exc.field},
    )


@app.exception_handler(DependencyError)
async def dependency_error_handler(request: Request, exc: DependencyError):
    logger.error("Dependency unavailable", dependency=exc.dependency, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Risk data temporarily unavailable. Try again shortly."},
    )


app.include_router(admin_router)

PROTECTED = [Depends(verify_api_token), Depends(check_rate_limit)]


@app.get("/health")
def health():
    """Health check endpoint - no auth required."""
    return {"status": "ok"}


@app.get("/status")
def status_info():
    return {
        "status": "ok",
        "version": "0.1.0",
        "environment": settings.environment,
        "auth_enabled": bool(settings.api_token),
        "rate_limit": {
            "requests": settings.rate_limit_requests,
            "window_seconds": settings.rate_limit_window,
        },
        "auto_blacklist_critical_domains": settings.auto_blacklist_critical_domains,
    }


# ============== URL SCANNING ==============


@app.post("/scan/url", response_model=PhishingAnalysis, dependencies=PROTECTED)
async def scan_url_endpoint(payload: UrlScanRequest, store: SqlStore = Depends(get_store)):
    """
    Score a URL for phishing risk.

    Malformed URLs are not rejected here: they come back as critical/block.
    Only an oversized URL is a client error.
    """
    if len(payload.url) > settings.max_url_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"URL exceeds {settings.max_url_length} characters.",
        )

    result = await scan_url(
        payload.url,
        is_domain_blacklisted=store.is_domain_blacklisted,
        add_phishing_domain=store.add_phishing_domain,
    )
    store.save_scan(payload.url, result, user_id=payload.user_id)
    return result


@app.get("/scan/history", response_model=List[ScanHistoryItem], dependencies=[Depends(verify_api_token)])
async def scan_history(
    user_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    store: SqlStore = Depends(get_store),
):
    return store.list_scans(user_id=user_id, limit=limit)


# ============== TRANSACTIONS ==============


@app.post("/transactions/analyze", response_model=TransactionAnalysisResult, dependencies=PROTECTED)
async def analyze_transaction_endpoint(
    payload: TransactionAnalysisRequest,
    store: SqlStore = Depends(get_store),
):
    """
    Pre-transaction risk check.

    Invalid input is a 400, an unreadable risk store a 503. The analyzer
    never guesses "safe" when it cannot see the data.
    """
    return await analyze_transaction(
        user_id=payload.user_id,
        amount=payload.amount,
        receiver_upi=payload.receiver_upi,
        deps=store.dependencies(),
        hour=payload.hour,
    )


@app.post("/transactions", response_model=RecordedTransaction, dependencies=PROTECTED)
async def record_transaction(payload: TransactionCreateRequest, store: SqlStore = Depends(get_store)):
    """
    Record a completed payment so later checks see it in the history.

    The payment is scored against the history it is about to join and the
    computed score and fraud category are stored with it.
    """
    hour = validate_transaction_input(payload.amount, payload.receiver_upi, payload.hour)
    assessment = await assess_completed_transaction(
        user_id=payload.user_id,
        amount=payload.amount,
        receiver_upi=payload.receiver_upi,
        deps=store.dependencies(),
    )
    record = store.record_transaction(
        user_id=payload.user_id,
        amount=payload.amount,
        receiver_upi=payload.receiver_upi,
        hour=hour,
        risk_score=assessment.risk_score,
        fraud_category=assessment.fraud_category,
    )
    logger.info(
        "Transaction recorded",
        user_id=payload.user_id,
        amount=payload.amount,
        risk_score=assessment.risk_score,
    )
    return RecordedTransaction(
        **record.model_dump(),
        reasons=assessment.reasons,
        is_anomaly=assessment.is_anomaly,
    )


# ============== CONTACTS ==============


@app.post("/contacts", response_model=TrustedContact, dependencies=[Depends(verify_api_token)])
async def save_contact(payload: ContactCreateRequest, store: SqlStore = Depends(get_store)):
    if "@" not in payload.upi_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="upi_id must look like name@provider",
        )
    contact = TrustedContact(
        upi_id=payload.upi_id,
        contact_name=payload.contact_name,
        status=payload.status,
    )
    return store.save_contact(payload.user_id, contact)


@app.get("/contacts", response_model=List[TrustedContact], dependencies=[Depends(verify_api_token)])
async def list_contacts(user_id: str, store: SqlStore = Depends(get_store)):
    return await store.trusted_contacts(user_id)


def main():
    """Console entry point: serve the API with uvicorn."""
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
