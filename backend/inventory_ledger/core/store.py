"""
Ledger Store - transactional record store over SQLAlchemy sessions

Reads open a short-lived session and hand back detached records. Writes are
staged on a WriteBatch and applied together in one transaction on commit:
either every staged write lands or none does.
"""
from typing import Any, List, Optional, Tuple
from uuid import uuid4
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from inventory_ledger.core.exceptions import NotFound, StoreFailure

logger = logging.getLogger(__name__)


class WriteBatch:
    """Staged set/update/delete writes committed atomically by the store"""

    def __init__(self, store: "LedgerStore"):
        self._store = store
        self._writes: List[Tuple[str, Any, str, dict]] = []
        self._committed = False

    def set(self, model, record_id: str, **values) -> "WriteBatch":
        """Create the record, or overwrite it when it already exists"""
        self._writes.append(("set", model, record_id, values))
        return self

    def update(self, model, record_id: str, **values) -> "WriteBatch":
        """Change fields of an existing record; commit fails if it is missing"""
        self._writes.append(("update", model, record_id, values))
        return self

    def delete(self, model, record_id: str) -> "WriteBatch":
        self._writes.append(("delete", model, record_id, {}))
        return self

    @property
    def writes(self) -> List[Tuple[str, Any, str, dict]]:
        return list(self._writes)

    def __len__(self) -> int:
        return len(self._writes)

    def commit(self):
        if self._committed:
            raise RuntimeError("Batch already committed")
        self._store.commit_writes(self._writes)
        self._committed = True


class LedgerStore:
    """
    Store handle passed into every service.

    get/query return detached records; changing them does not change the
    store. All changes go through batch().
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def new_id(self) -> str:
        return uuid4().hex

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def get(self, model, record_id: str) -> Optional[Any]:
        db = self.session_factory()
        try:
            return db.get(model, record_id)
        except SQLAlchemyError as e:
            logger.error(f"Read of {model.__tablename__}/{record_id} failed: {e}")
            raise StoreFailure(f"Could not read {model.__tablename__}/{record_id}") from e
        finally:
            db.close()

    def query(self, model, *criteria, order_by=None) -> List[Any]:
        db = self.session_factory()
        try:
            query = db.query(model)
            if criteria:
                query = query.filter(*criteria)
            if order_by is not None:
                if isinstance(order_by, (list, tuple)):
                    query = query.order_by(*order_by)
                else:
                    query = query.order_by(order_by)
            return query.all()
        except SQLAlchemyError as e:
            logger.error(f"Query on {model.__tablename__} failed: {e}")
            raise StoreFailure(f"Could not query {model.__tablename__}") from e
        finally:
            db.close()

    def commit_writes(self, writes: List[Tuple[str, Any, str, dict]]):
        db = self.session_factory()
        try:
            for op, model, record_id, values in writes:
                if op == "set":
                    db.merge(model(id=record_id, **values))
                    continue
                record = db.get(model, record_id)
                if record is None:
                    raise NotFound(model.__name__, record_id)
                if op == "delete":
                    db.delete(record)
                    continue
                for key, value in values.items():
                    setattr(record, key, value)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Batch of {len(writes)} writes rolled back: {e}")
            raise StoreFailure("Batch commit failed; no changes were applied") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
