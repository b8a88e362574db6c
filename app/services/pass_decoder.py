# app/services/pass_decoder.py
"""
Camera QR scanner: reads frames from a camera and decodes QR codes until
one is found or the session is cancelled.

States:
  idle ──start()──► scanning ──code found──► decoded ──reset()──► scanning
    │                  │                        │
    └──────────────────┴──────cancel()──────────┴──► cancelled

One tick = grab one frame at native resolution + try to decode it.
Ticks never overlap: the next one is scheduled only after the current one
has finished, including a decode left running by a loop that reset() or
cancel() replaced. "No QR in this frame" is the normal state while the guard is
aiming the camera and simply schedules the next tick.

cancel() releases the camera before returning. A decode still running in a
worker thread at that moment is discarded (generation check), so no
on_decoded callback fires after cancel.

A camera device is owned by at most one session at a time.
"""

import asyncio
import inspect
import threading
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

import cv2

from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Devices currently held by a session (keyed by camera source)
_owned_devices: set = set()


class ScannerState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DECODED = "decoded"
    CANCELLED = "cancelled"


class CameraUnavailableError(Exception):
    """Camera could not be opened (missing device, permission, bad stream URL)."""


class CameraBusyError(Exception):
    """Another scanner session still owns this camera."""


class ScannerStateError(Exception):
    """Operation not allowed in the session's current state."""


class OpenCVFrameSource:
    """
    cv2.VideoCapture wrapper. A numeric source is a local device index,
    anything else is treated as a stream URL (rtsp://, http://).
    """

    def __init__(self, source: str):
        self.source = str(source)
        self._cap = None
        self._lock = threading.Lock()

    def open(self):
        src = int(self.source) if self.source.isdigit() else self.source
        cap = cv2.VideoCapture(src)
        if not cap.isOpened():
            cap.release()
            raise CameraUnavailableError(f"Camera '{self.source}' could not be opened")
        with self._lock:
            self._cap = cap
        logger.info(f"📷 Camera {self.source} opened")

    def read(self):
        """Latest frame as a BGR array, or None if no frame is ready."""
        with self._lock:
            if self._cap is None:
                return None
            ok, frame = self._cap.read()
        return frame if ok else None

    def release(self):
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
                logger.info(f"📷 Camera {self.source} released")


def decode_qr_frame(frame) -> Optional[str]:
    """Locate and decode a QR code in one frame. Returns None if there is none."""
    if frame is None:
        return None
    data, _points, _ = cv2.QRCodeDetector().detectAndDecode(frame)
    return data or None


DecodedCallback = Callable[[str], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], None]


class ScannerSession:
    def __init__(self, frame_source, decoder: Callable = decode_qr_frame,
                 on_decoded: Optional[DecodedCallback] = None,
                 on_error: Optional[ErrorCallback] = None,
                 frame_interval: Optional[float] = None):
        self.frame_source = frame_source
        self.decoder = decoder
        self.on_decoded = on_decoded
        self.on_error = on_error
        self.frame_interval = settings.SCANNER_FRAME_INTERVAL if frame_interval is None else frame_interval
        self.device_key = str(getattr(frame_source, "source", id(frame_source)))

        self.state = ScannerState.IDLE
        self.payload: Optional[str] = None
        self.error: Optional[str] = None
        self.frames_processed = 0

        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._settled: Optional[asyncio.Event] = None
        self._inflight: Optional[asyncio.Future] = None   # decode running in a worker thread
        self._camera_open = False
        self._opening = False

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def start(self):
        """Acquire the camera and begin scanning."""
        if self.state in (ScannerState.SCANNING, ScannerState.DECODED):
            raise ScannerStateError(f"Scanner already {self.state.value}")
        if self.device_key in _owned_devices:
            raise CameraBusyError(f"Camera '{self.device_key}' is in use by another session")

        _owned_devices.add(self.device_key)
        self._generation += 1
        generation = self._generation
        self.error = None
        self._opening = True
        try:
            await asyncio.to_thread(self.frame_source.open)
        except (CameraUnavailableError, OSError, cv2.error) as e:
            self._opening = False
            _owned_devices.discard(self.device_key)
            self.state = ScannerState.CANCELLED
            self.error = str(e)
            logger.error(f"❌ Scanner could not open camera {self.device_key}: {e}")
            if self.on_error:
                self.on_error(e)
            raise CameraUnavailableError(str(e)) from e
        self._opening = False

        if generation != self._generation:
            # cancel() arrived while the camera was opening
            self.frame_source.release()
            _owned_devices.discard(self.device_key)
            return

        self._camera_open = True
        self._begin_scanning()

    def cancel(self):
        """Stop scanning and release the camera. Safe to call in any state."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

        if self._camera_open:
            self.frame_source.release()
            self._camera_open = False
        if not self._opening:
            _owned_devices.discard(self.device_key)

        if self.state is not ScannerState.CANCELLED:
            logger.info(f"🛑 Scanner on {self.device_key} cancelled (was {self.state.value})")
        self.state = ScannerState.CANCELLED
        if self._settled is not None:
            self._settled.set()

    def reset(self):
        """Forget the last result and scan again with the same camera."""
        if self.state not in (ScannerState.DECODED, ScannerState.SCANNING):
            raise ScannerStateError(f"Cannot reset a scanner that is {self.state.value}")
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.payload = None
        self._begin_scanning()

    async def wait(self) -> Optional[str]:
        """Wait until this scan decodes or is cancelled; returns the payload (None if cancelled)."""
        if self._settled is None:
            return self.payload
        await self._settled.wait()
        return self.payload

    # ── Frame loop ────────────────────────────────────────────────────────

    def _begin_scanning(self):
        self._generation += 1
        generation = self._generation
        self.state = ScannerState.SCANNING
        self._settled = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._run(generation), name=f"scanner-{self.device_key}"
        )
        logger.info(f"🔍 Scanner on {self.device_key} scanning")

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self.state is ScannerState.SCANNING

    def _capture_and_decode(self) -> Optional[str]:
        frame = self.frame_source.read()
        if frame is None:
            return None
        try:
            return self.decoder(frame)
        except cv2.error as e:
            logger.debug(f"Frame decode failed on {self.device_key}: {e}")
            return None

    async def _wait_for_inflight(self):
        """A loop replaced by reset() or cancel() may leave a decode running; wait it out."""
        previous = self._inflight
        if previous is not None and not previous.done():
            await asyncio.wait([previous])

    async def _run(self, generation: int):
        await self._wait_for_inflight()
        while self._is_current(generation):
            self._inflight = asyncio.ensure_future(asyncio.to_thread(self._capture_and_decode))
            # Shielded so cancelling this loop leaves _inflight tracking the worker
            payload = await asyncio.shield(self._inflight)
            if not self._is_current(generation):
                return  # cancelled or reset while the frame was being decoded
            self.frames_processed += 1

            if payload:
                self.state = ScannerState.DECODED
                self.payload = payload
                logger.info(f"✅ QR decoded on {self.device_key} after {self.frames_processed} frames")
                await self._deliver(payload)
                self._settled.set()
                return

            await asyncio.sleep(self.frame_interval)

    async def _deliver(self, payload: str):
        if self.on_decoded is None:
            return
        try:
            result = self.on_decoded(payload)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.error = str(e)
            logger.error(f"Scan result handler failed on {self.device_key}: {e}", exc_info=True)
