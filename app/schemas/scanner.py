# app/schemas/scanner.py
from pydantic import BaseModel
from typing import Optional
from app.schemas.visitor_pass import VerificationOut


class ScannerStatusOut(BaseModel):
    state: str                       # idle | scanning | decoded | cancelled
    camera_source: str
    frames_processed: int
    last_payload: Optional[str] = None
    last_result: Optional[VerificationOut] = None
    error: Optional[str] = None
