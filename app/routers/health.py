# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + gate scanner.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from app.database import get_db
from app.services.gate_scanner import gate_scanner
from app.services.share_service import can_share
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "scanner": gate_scanner.session.state.value,
        "share_gateway": "configured" if can_share() else "download_only",
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except SQLAlchemyError as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    if gate_scanner.session.error:
        result["scanner_error"] = gate_scanner.session.error

    return result
