# app/services/session_provider.py
"""
Session provider: resolves the resident acting on the API into a HostIdentity.
The identity is read from the profiles table by id; sign-in itself happens
upstream and is not handled here.
"""

from dataclasses import dataclass
from typing import Optional
from app.services.record_store import RecordStore, PROFILES_TABLE
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class HostIdentity:
    id: str
    name: str
    address: Optional[str] = None


def load_host(store: RecordStore, host_id: str) -> Optional[HostIdentity]:
    """Returns None when no profile exists for host_id. Store errors propagate."""
    profile = store.select_one(PROFILES_TABLE, "id", host_id)
    if profile is None:
        logger.warning(f"[SESSION] Unknown host id {host_id}")
        return None
    return HostIdentity(id=profile.id, name=profile.full_name, address=profile.address)
