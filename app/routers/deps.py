# app/routers/deps.py
"""Shared FastAPI dependencies: record stores and the acting host."""

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db, get_session_factory
from app.services.record_store import RecordStore, RecordStoreError, ScopedSqlRecordStore, SqlRecordStore
from app.services.session_provider import HostIdentity, load_host


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return SqlRecordStore(db)


def get_verification_store(session_factory=Depends(get_session_factory)) -> RecordStore:
    # Verification queries run in worker threads under a timeout
    return ScopedSqlRecordStore(session_factory)


def get_current_host(
    x_host_id: str = Header(None, alias="X-Host-Id"),
    store: RecordStore = Depends(get_store),
) -> HostIdentity:
    if not x_host_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Host-Id header")
    try:
        host = load_host(store, x_host_id)
    except RecordStoreError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Profile store unavailable")
    if host is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown resident")
    return host
