# app/services/verification_service.py
"""
Visitor pass verification.

Input:  scanned QR text, or the token segment of /verify-visitor/<token>
Output: VerificationOutcome with one of four states

  valid    → scheduled date is today (host-local calendar day)
  future   → scheduled date has not arrived yet
  expired  → scheduled date has passed
  invalid  → unreadable payload, unknown/revoked token, or store failure

Every call re-reads the store; nothing is cached and nothing is retried.
A valid pass can be verified any number of times on its day (entry + exit).
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
import pytz
from app.config import settings
from app.services.record_store import RecordStore, RecordStoreError, PASSES_TABLE, PROFILES_TABLE
from app.utils.token_parser import extract_token, is_token_shaped
from app.utils.logger import get_logger

logger = get_logger(__name__)

MSG_FORMAT = "QR code format not recognized."
MSG_NOT_FOUND = "Invitation not found."
MSG_STORE_ERROR = "Error verifying invitation."


class VerificationState(str, Enum):
    VALID = "valid"
    FUTURE = "future"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass
class VerificationOutcome:
    state: VerificationState
    record: Optional[Any] = None
    message: Optional[str] = None
    host_address: Optional[str] = None


class TokenAuthorizer:
    """
    Decides whether a presented token may be looked up, and under which key.
    Return None to reject. Swap in a signed/short-lived scheme here without
    touching the date classification below.
    """

    def authorize(self, token: str) -> Optional[str]:
        raise NotImplementedError


class PossessionAuthorizer(TokenAuthorizer):
    """Knowing the token is enough to see the pass."""

    def authorize(self, token: str) -> Optional[str]:
        return token


def format_day(d: date) -> str:
    return d.strftime("%d/%m/%Y")


def to_local_day(value: Any, tz) -> date:
    """Truncate a stored visit date/datetime to the host-local calendar day."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = pytz.utc.localize(value)
        return value.astimezone(tz).date()
    return value


def classify(visit_day: date, today: date) -> VerificationState:
    if visit_day == today:
        return VerificationState.VALID
    if visit_day > today:
        return VerificationState.FUTURE
    return VerificationState.EXPIRED


class VerificationResolver:
    def __init__(self, store: RecordStore, authorizer: Optional[TokenAuthorizer] = None,
                 timeout: Optional[float] = None, tz_name: Optional[str] = None):
        self.store = store
        self.authorizer = authorizer or PossessionAuthorizer()
        self.timeout = settings.STORE_QUERY_TIMEOUT_SECONDS if timeout is None else timeout
        self.tz = pytz.timezone(tz_name or settings.TIMEZONE)

    def today(self) -> date:
        return datetime.now(self.tz).date()

    async def resolve(self, payload: Optional[str], today: Optional[date] = None) -> VerificationOutcome:
        """Classify a scanned payload or a token taken from a verification link."""
        token = extract_token(payload)
        if token is None:
            logger.info(f"[VERIFY] Unrecognised payload ({len(payload or '')} chars)")
            return VerificationOutcome(VerificationState.INVALID, message=MSG_FORMAT)
        return await self._resolve_token(token, today)

    async def resolve_token(self, token: str, today: Optional[date] = None) -> VerificationOutcome:
        """Classify an identifier taken from the /verify-visitor/<token> path."""
        if not is_token_shaped(token):
            return VerificationOutcome(VerificationState.INVALID, message=MSG_NOT_FOUND)
        return await self._resolve_token(token.strip().lower(), today)

    async def _query(self, table: str, field: str, value: Any):
        return await asyncio.wait_for(
            asyncio.to_thread(self.store.select_one, table, field, value),
            timeout=self.timeout,
        )

    async def _resolve_token(self, token: str, today: Optional[date]) -> VerificationOutcome:
        key = self.authorizer.authorize(token)
        if not key:
            logger.warning(f"[VERIFY] Token rejected by authorizer: {token}")
            return VerificationOutcome(VerificationState.INVALID, message=MSG_NOT_FOUND)

        try:
            record = await self._query(PASSES_TABLE, "pass_token", key)
        except asyncio.TimeoutError:
            logger.error(f"[VERIFY] Store lookup timed out after {self.timeout}s for {token}")
            return VerificationOutcome(VerificationState.INVALID, message=MSG_STORE_ERROR)
        except RecordStoreError as e:
            logger.error(f"[VERIFY] Store lookup failed for {token}: {e}")
            return VerificationOutcome(VerificationState.INVALID, message=MSG_STORE_ERROR)

        if record is None:
            logger.info(f"[VERIFY] No pass for token {token}")
            return VerificationOutcome(VerificationState.INVALID, message=MSG_NOT_FOUND)

        host_address = await self._host_address(record.host_id)

        today = today or self.today()
        visit_day = to_local_day(record.scheduled_date, self.tz)
        state = classify(visit_day, today)

        if state is VerificationState.VALID:
            message = f"Visitor expected today ({format_day(visit_day)})."
        elif state is VerificationState.FUTURE:
            message = f"This pass is for {format_day(visit_day)}, which has not arrived yet."
        else:
            message = f"This pass was for {format_day(visit_day)}, not today."

        logger.info(f"[VERIFY] {state.value.upper()} | pass={record.id} | visitor={record.visitor_name} "
                    f"| plate={record.vehicle_plate} | date={visit_day}")
        return VerificationOutcome(state, record=record, message=message, host_address=host_address)

    async def _host_address(self, host_id: str) -> Optional[str]:
        """Best-effort join; a missing profile or address is not an error."""
        try:
            profile = await self._query(PROFILES_TABLE, "id", host_id)
        except (asyncio.TimeoutError, RecordStoreError) as e:
            logger.warning(f"[VERIFY] Host address unavailable for {host_id}: {e!r}")
            return None
        return profile.address if profile is not None and profile.address else None
