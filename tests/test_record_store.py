"""Unit tests for the SQLAlchemy-backed record store."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import threading
import time
import pytest
from unittest.mock import MagicMock
from datetime import date, datetime
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from app.services.record_store import (
    PASSES_TABLE, PROFILES_TABLE, RecordStoreError, ScopedSqlRecordStore, SqlRecordStore,
)
from app.services.verification_service import MSG_STORE_ERROR, VerificationResolver, VerificationState
from app.services.session_provider import load_host

TOKEN = "0b6c5a8e-3f1d-4c2b-9a7e-5d4f3c2b1a09"


def pass_row(host_id, token, scheduled_date, visitor_name="Alice Tan"):
    return {
        "pass_token": token,
        "host_id": host_id,
        "host_name": "Farid Ismail",
        "visitor_name": visitor_name,
        "visitor_phone": "0123456789",
        "vehicle_plate": "WXY 1234",
        "vehicle_type": "car",
        "scheduled_date": scheduled_date,
        "reason": "",
        "created_at": datetime.utcnow(),
    }


class TestSqlRecordStore:
    def test_insert_assigns_id(self, store, host):
        row = store.insert(PASSES_TABLE, pass_row(host.id, "tok-1", date(2026, 10, 20)))
        assert row.id
        assert row.pass_token == "tok-1"

    def test_select_one_by_field(self, store, host):
        store.insert(PASSES_TABLE, pass_row(host.id, "tok-1", date(2026, 10, 20)))
        assert store.select_one(PASSES_TABLE, "pass_token", "tok-1").visitor_name == "Alice Tan"
        assert store.select_one(PASSES_TABLE, "pass_token", "missing") is None

    def test_select_many_ordered(self, store, host):
        store.insert(PASSES_TABLE, pass_row(host.id, "tok-1", date(2026, 10, 20), "A"))
        store.insert(PASSES_TABLE, pass_row(host.id, "tok-2", date(2026, 10, 25), "B"))
        store.insert(PASSES_TABLE, pass_row("other-host", "tok-3", date(2026, 10, 22), "C"))

        rows = store.select_many(PASSES_TABLE, "host_id", host.id, order_by="scheduled_date", descending=True)
        assert [r.visitor_name for r in rows] == ["B", "A"]

    def test_delete(self, store, host):
        row = store.insert(PASSES_TABLE, pass_row(host.id, "tok-1", date(2026, 10, 20)))
        assert store.delete(PASSES_TABLE, row.id) is True
        assert store.delete(PASSES_TABLE, row.id) is False
        assert store.select_one(PASSES_TABLE, "pass_token", "tok-1") is None

    def test_duplicate_token_rejected(self, store, host):
        store.insert(PASSES_TABLE, pass_row(host.id, "tok-1", date(2026, 10, 20)))
        with pytest.raises(RecordStoreError):
            store.insert(PASSES_TABLE, pass_row(host.id, "tok-1", date(2026, 10, 21)))
        # Session is usable again after the rollback
        assert store.select_one(PASSES_TABLE, "pass_token", "tok-1") is not None

    def test_unknown_table_and_field(self, store):
        with pytest.raises(RecordStoreError):
            store.select_one("guests", "id", "x")
        with pytest.raises(RecordStoreError):
            store.select_one(PASSES_TABLE, "colour", "red")

    def test_driver_error_wrapped(self):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
        store = SqlRecordStore(db)
        with pytest.raises(RecordStoreError):
            store.select_one(PASSES_TABLE, "pass_token", "tok-1")
        db.rollback.assert_called_once()


class TestSessionProvider:
    def test_load_host(self, store, host):
        loaded = load_host(store, host.id)
        assert loaded == host

    def test_unknown_host(self, store):
        assert load_host(store, "nobody") is None

    def test_profile_without_address(self, store):
        profile = store.insert(PROFILES_TABLE, {"full_name": "Mei Ling", "created_at": datetime.utcnow()})
        assert load_host(store, profile.id).address is None


class TestScopedSqlRecordStore:
    def test_each_call_uses_its_own_session(self, engine, host):
        opened = []
        factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

        def tracking_factory():
            session = factory()
            opened.append(session)
            return session

        store = ScopedSqlRecordStore(tracking_factory)
        row = store.insert(PASSES_TABLE, pass_row(host.id, "tok-1", date(2026, 10, 20)))
        found = store.select_one(PASSES_TABLE, "pass_token", "tok-1")

        assert len(opened) == 2
        assert found.id == row.id
        assert found.visitor_name == "Alice Tan"  # loaded before the session closed
        assert store.delete(PASSES_TABLE, row.id) is True

    def test_session_closed_after_error(self):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
        store = ScopedSqlRecordStore(lambda: db)
        with pytest.raises(RecordStoreError):
            store.select_one(PASSES_TABLE, "pass_token", "tok-1")
        db.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_timed_out_lookup_keeps_its_session_until_done(self):
        sessions = []
        caller = threading.get_ident()

        def slow_session():
            db = MagicMock()
            db.query.return_value.filter.return_value.first.side_effect = lambda: time.sleep(0.3)
            sessions.append((db, threading.get_ident()))
            return db

        resolver = VerificationResolver(ScopedSqlRecordStore(slow_session), timeout=0.05)
        outcome = await resolver.resolve(TOKEN)
        assert outcome.state is VerificationState.INVALID
        assert outcome.message == MSG_STORE_ERROR

        db, thread_id = sessions[0]
        assert thread_id != caller
        db.close.assert_not_called()  # query still running, nobody else touches the session

        await asyncio.sleep(0.4)
        db.close.assert_called_once()
