# app/services/pass_service.py
"""
Visitor pass issuance and revocation.

Flow:
  - Host submits visitor details → a fresh pass token is generated → row inserted
  - Host lists their passes (latest scheduled date first)
  - Host deletes a pass → row removed; its token then verifies as "not found"

There is no update path: a pass is immutable from creation until it is deleted.
"""

from datetime import date, datetime
from typing import Callable, Optional
from app.models.visitor_pass import VisitorPass
from app.schemas.visitor_pass import PassCreate
from app.services.record_store import RecordStore, PASSES_TABLE
from app.services.session_provider import HostIdentity
from app.services.token_generator import generate_pass_token
from app.utils.logger import get_logger

logger = get_logger(__name__)


class PassCreationError(Exception):
    """Pass could not be issued; nothing was written to the store."""


class PassNotFound(Exception):
    """No pass with this id belongs to the requesting host."""


def create_pass(store: RecordStore, host: HostIdentity, body: PassCreate,
                today: Optional[date] = None,
                token_factory: Callable[[], str] = generate_pass_token) -> VisitorPass:
    if today is not None and body.scheduled_date < today:
        raise PassCreationError(f"Visit date {body.scheduled_date.isoformat()} is in the past")

    try:
        token = token_factory()
    except (OSError, NotImplementedError) as e:
        logger.critical(f"[PASS] Token generation failed for host {host.id}: {e}")
        raise PassCreationError("Could not generate a pass token") from e
    if not token:
        raise PassCreationError("Could not generate a pass token")

    record = store.insert(PASSES_TABLE, {
        "pass_token": token,
        "host_id": host.id,
        "host_name": host.name,
        "visitor_name": body.visitor_name,
        "visitor_phone": body.visitor_phone,
        "vehicle_plate": body.vehicle_plate,
        "vehicle_type": body.vehicle_type,
        "scheduled_date": body.scheduled_date,
        "reason": body.reason,
        "created_at": datetime.utcnow(),
    })
    logger.info(f"[PASS] Issued {record.id} | host={host.id} | visitor={body.visitor_name} "
                f"| plate={body.vehicle_plate} | date={body.scheduled_date}")
    return record


def list_passes(store: RecordStore, host: HostIdentity) -> list:
    return store.select_many(PASSES_TABLE, "host_id", host.id,
                             order_by="scheduled_date", descending=True)


def get_pass(store: RecordStore, host: HostIdentity, pass_id: str) -> VisitorPass:
    record = store.select_one(PASSES_TABLE, "id", pass_id)
    if record is None or record.host_id != host.id:
        raise PassNotFound(pass_id)
    return record


def delete_pass(store: RecordStore, host: HostIdentity, pass_id: str) -> None:
    """Revoke a pass. Only the issuing host may delete it."""
    record = get_pass(store, host, pass_id)
    if not store.delete(PASSES_TABLE, record.id):
        raise PassNotFound(pass_id)
    logger.info(f"[PASS] Revoked {pass_id} | host={host.id} | visitor={record.visitor_name}")
