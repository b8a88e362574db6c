# app/routers/scanner.py
"""Guard-post camera scanner control."""

from fastapi import APIRouter, HTTPException
from app.schemas.scanner import ScannerStatusOut
from app.services.gate_scanner import gate_scanner
from app.services.pass_decoder import CameraBusyError, CameraUnavailableError, ScannerStateError

router = APIRouter()


@router.post("/scanner/start", response_model=ScannerStatusOut, summary="Open the gate camera and scan")
async def start_scanner():
    try:
        await gate_scanner.start()
    except CameraUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Unable to access camera: {e}")
    except (CameraBusyError, ScannerStateError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    return gate_scanner.status()


@router.post("/scanner/reset", response_model=ScannerStatusOut, summary="Scan the next visitor")
async def reset_scanner():
    try:
        gate_scanner.reset()
    except ScannerStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return gate_scanner.status()


@router.post("/scanner/cancel", response_model=ScannerStatusOut, summary="Stop scanning and release the camera")
def cancel_scanner():
    gate_scanner.cancel()
    return gate_scanner.status()


@router.get("/scanner/status", response_model=ScannerStatusOut)
def scanner_status():
    return gate_scanner.status()
