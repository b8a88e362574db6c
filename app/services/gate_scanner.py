# app/services/gate_scanner.py
"""
Guard-post scanner: the camera at the gate, driven over the API.

POST /scanner/start  → open SCANNER_CAMERA_SOURCE and scan
(code found)         → resolve the pass (one DB session per lookup), keep the result
POST /scanner/reset  → discard the result, scan the next visitor (camera stays open)
POST /scanner/cancel → stop and release the camera
"""

from typing import Optional
from app.config import settings
from app.database import SessionLocal
from app.schemas.scanner import ScannerStatusOut
from app.schemas.visitor_pass import VerificationOut
from app.services.pass_decoder import OpenCVFrameSource, ScannerSession, ScannerState
from app.services.record_store import ScopedSqlRecordStore
from app.services.verification_presenter import present
from app.services.verification_service import VerificationResolver
from app.utils.logger import get_logger

logger = get_logger(__name__)


class GateScanner:
    def __init__(self, camera_source: Optional[str] = None, frame_source=None, session_factory=SessionLocal):
        self.camera_source = camera_source or settings.SCANNER_CAMERA_SOURCE
        self.session_factory = session_factory
        self.session = ScannerSession(
            frame_source or OpenCVFrameSource(self.camera_source),
            on_decoded=self._handle_payload,
        )
        self.last_result: Optional[VerificationOut] = None

    async def _handle_payload(self, payload: str):
        # Each lookup opens its own session in the worker thread
        store = ScopedSqlRecordStore(self.session_factory)
        self.last_result = present(await VerificationResolver(store).resolve(payload))
        logger.info(f"[SCANNER] {self.last_result.headline}: {self.last_result.message}")

    async def start(self):
        self.last_result = None
        await self.session.start()

    def cancel(self):
        self.session.cancel()

    def reset(self):
        self.last_result = None
        self.session.reset()

    @property
    def is_active(self) -> bool:
        return self.session.state in (ScannerState.SCANNING, ScannerState.DECODED)

    def status(self) -> ScannerStatusOut:
        return ScannerStatusOut(
            state=self.session.state.value,
            camera_source=self.camera_source,
            frames_processed=self.session.frames_processed,
            last_payload=self.session.payload,
            last_result=self.last_result,
            error=self.session.error,
        )


gate_scanner = GateScanner()
