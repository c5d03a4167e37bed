"""
Data store access for the ledger and reconciler
The components only use the small capability set defined on Store, so they
can be exercised against any backend that provides it.
"""
from contextlib import contextmanager
import logging

from sqlalchemy.exc import SQLAlchemyError

from errors import NotFound, StoreError
from models import db

logger = logging.getLogger(__name__)


class Store:
    """Fetch-filtered, fetch-by-id, insert, update, delete, plus a transaction scope"""

    def fetch_all(self, model, order_by=None, between=None, **filters):
        raise NotImplementedError

    def fetch_by_id(self, model, record_id):
        raise NotImplementedError

    def insert(self, model, **values):
        raise NotImplementedError

    def update(self, model, record_id, **values):
        raise NotImplementedError

    def delete(self, model, record_id):
        raise NotImplementedError

    def lock(self, model, record_id):
        """Fetch a row and hold it until the surrounding transaction ends"""
        return self.fetch_by_id(model, record_id)

    @contextmanager
    def transaction(self):
        yield self

    def require(self, model, record_id):
        """Fetch by id or raise NotFound"""
        record = self.fetch_by_id(model, record_id)
        if record is None:
            raise NotFound(f'{model.__name__} {record_id} not found')
        return record


class SQLAlchemyStore(Store):
    """Store backed by the Flask-SQLAlchemy session"""

    def __init__(self, session=None):
        self.session = session or db.session
        self._in_transaction = False

    @contextmanager
    def _guard(self, action):
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Store {action} failed: {str(e)}")
            raise StoreError() from e

    def _commit(self):
        if not self._in_transaction:
            self.session.commit()

    def _query(self, model, order_by=None, between=None, **filters):
        query = self.session.query(model).filter_by(**filters)
        if between:
            column, start, end = between
            query = query.filter(getattr(model, column).between(start, end))
        if order_by:
            if isinstance(order_by, str):
                order_by = [order_by]
            for name in order_by:
                if name.startswith('-'):
                    query = query.order_by(getattr(model, name[1:]).desc())
                else:
                    query = query.order_by(getattr(model, name))
        return query

    def fetch_all(self, model, order_by=None, between=None, **filters):
        with self._guard(f'fetch of {model.__name__}'):
            return self._query(model, order_by, between, **filters).all()

    def fetch_by_id(self, model, record_id):
        with self._guard(f'fetch of {model.__name__} {record_id}'):
            return self.session.get(model, record_id)

    def insert(self, model, **values):
        with self._guard(f'insert into {model.__name__}'):
            record = model(**values)
            self.session.add(record)
            self.session.flush()
            self._commit()
            return record

    def update(self, model, record_id, **values):
        record = self.require(model, record_id)
        with self._guard(f'update of {model.__name__} {record_id}'):
            for key, value in values.items():
                setattr(record, key, value)
            self.session.flush()
            self._commit()
            return record

    def delete(self, model, record_id):
        record = self.require(model, record_id)
        with self._guard(f'delete of {model.__name__} {record_id}'):
            self.session.delete(record)
            self._commit()

    def lock(self, model, record_id):
        # SELECT ... FOR UPDATE; SQLite ignores the clause and serializes writers instead
        with self._guard(f'lock of {model.__name__} {record_id}'):
            return (self.session.query(model)
                    .filter_by(id=record_id)
                    .with_for_update()
                    .one_or_none())

    @contextmanager
    def transaction(self):
        if self._in_transaction:
            yield self
            return

        self._in_transaction = True
        try:
            yield self
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Store transaction failed: {str(e)}")
            raise StoreError() from e
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._in_transaction = False
