# app/routers/verification.py
"""
Pass verification.
GET  {BASE_PATH}/verify-visitor/{pass_token}  the link inside every QR code (public)
POST /api/v1/verify/scan                      raw text from any QR scanner
Both always answer 200 with a VerificationOut; failures are state="invalid".
"""

from fastapi import APIRouter, Depends
from app.routers.deps import get_verification_store
from app.schemas.visitor_pass import ScanIn, VerificationOut
from app.services.record_store import RecordStore
from app.services.verification_presenter import present
from app.services.verification_service import VerificationResolver
from app.utils.token_parser import VERIFY_SEGMENT

router = APIRouter()         # mounted under /api/v1
public_router = APIRouter()  # mounted under BASE_PATH


@public_router.get(f"/{VERIFY_SEGMENT}/{{pass_token}}", response_model=VerificationOut,
                   summary="Verify a visitor pass from its link")
async def verify_link(pass_token: str, store: RecordStore = Depends(get_verification_store)):
    outcome = await VerificationResolver(store).resolve_token(pass_token)
    return present(outcome)


@router.post("/verify/scan", response_model=VerificationOut, summary="Verify a scanned QR payload")
async def verify_scan(body: ScanIn, store: RecordStore = Depends(get_verification_store)):
    outcome = await VerificationResolver(store).resolve(body.payload)
    return present(outcome)
