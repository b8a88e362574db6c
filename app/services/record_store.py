# app/services/record_store.py
"""
Table-oriented record store used by the pass lifecycle.

The pass services only talk to this interface:
  insert(table, record)              → inserted row
  select_one(table, field, value)    → row | None (not found)
  select_many(table, field, value)   → list of rows
  delete(table, id)                  → True | False (nothing to delete)
Any storage failure is raised as RecordStoreError.

SqlRecordStore is the SQLAlchemy-backed implementation over one session.
ScopedSqlRecordStore opens a session per call (verification lookups).
"""

from typing import Any, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.models.profile import Profile
from app.models.visitor_pass import VisitorPass
from app.utils.logger import get_logger

logger = get_logger(__name__)

PASSES_TABLE = "visitor_passes"
PROFILES_TABLE = "profiles"


class RecordStoreError(Exception):
    """The store could not complete a query (connection, constraint, etc.)."""


class RecordStore:
    def insert(self, table: str, record: dict) -> Any:
        raise NotImplementedError

    def select_one(self, table: str, field: str, value: Any) -> Optional[Any]:
        raise NotImplementedError

    def select_many(self, table: str, field: str, value: Any,
                    order_by: Optional[str] = None, descending: bool = False) -> list:
        raise NotImplementedError

    def delete(self, table: str, record_id: str) -> bool:
        raise NotImplementedError


class SqlRecordStore(RecordStore):
    MODELS = {
        PASSES_TABLE: VisitorPass,
        PROFILES_TABLE: Profile,
    }

    def __init__(self, db: Session):
        self.db = db

    def _model(self, table: str):
        model = self.MODELS.get(table)
        if model is None:
            raise RecordStoreError(f"Unknown table '{table}'")
        return model

    def _column(self, model, field: str):
        column = getattr(model, field, None)
        if column is None:
            raise RecordStoreError(f"Unknown field '{field}' on {model.__tablename__}")
        return column

    def insert(self, table: str, record: dict) -> Any:
        model = self._model(table)
        row = model(**record)
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[STORE] insert into {table} failed: {e}")
            raise RecordStoreError(f"Insert into {table} failed") from e
        return row

    def select_one(self, table: str, field: str, value: Any) -> Optional[Any]:
        model = self._model(table)
        column = self._column(model, field)
        try:
            return self.db.query(model).filter(column == value).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[STORE] select from {table} by {field} failed: {e}")
            raise RecordStoreError(f"Query on {table} failed") from e

    def select_many(self, table: str, field: str, value: Any,
                    order_by: Optional[str] = None, descending: bool = False) -> list:
        model = self._model(table)
        q = self.db.query(model).filter(self._column(model, field) == value)
        if order_by:
            sort_col = self._column(model, order_by)
            q = q.order_by(sort_col.desc() if descending else sort_col.asc())
        try:
            return q.all()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[STORE] list from {table} by {field} failed: {e}")
            raise RecordStoreError(f"Query on {table} failed") from e

    def delete(self, table: str, record_id: str) -> bool:
        model = self._model(table)
        try:
            row = self.db.query(model).filter(model.id == record_id).first()
            if row is None:
                return False
            self.db.delete(row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[STORE] delete {record_id} from {table} failed: {e}")
            raise RecordStoreError(f"Delete from {table} failed") from e
        return True


class ScopedSqlRecordStore(RecordStore):
    """
    Opens and closes its own session inside every call, in the calling thread.
    Used where queries run in worker threads under a timeout: an abandoned
    query keeps its session to itself, nothing else can close it mid-query.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def _call(self, method: str, *args, **kwargs):
        db = self.session_factory()
        try:
            return getattr(SqlRecordStore(db), method)(*args, **kwargs)
        finally:
            db.close()

    def insert(self, table: str, record: dict) -> Any:
        return self._call("insert", table, record)

    def select_one(self, table: str, field: str, value: Any) -> Optional[Any]:
        return self._call("select_one", table, field, value)

    def select_many(self, table: str, field: str, value: Any,
                    order_by: Optional[str] = None, descending: bool = False) -> list:
        return self._call("select_many", table, field, value, order_by=order_by, descending=descending)

    def delete(self, table: str, record_id: str) -> bool:
        return self._call("delete", table, record_id)
