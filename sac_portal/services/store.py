"""Document store used by the scheduling and grading services.

The services only need four primitives (get / set / update / query) plus a
versioned read and compare-and-set so read-modify-write cycles on shared
aggregates can detect concurrent writers instead of silently clobbering them.
"""
import copy
from collections import namedtuple
from contextlib import contextmanager
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import DocumentNotFound, PersistenceError, VersionConflict
from ..extensions import db
from ..models.document import Document


class _Sentinel:
    def __init__(self, name):
        self.name = name

    def __repr__(self):
        return self.name


# store assigns the write time
SERVER_TIMESTAMP = _Sentinel("SERVER_TIMESTAMP")
# removes the field on merge/update
DELETE = _Sentinel("DELETE")

_MISSING = object()

Snapshot = namedtuple("Snapshot", ["id", "data", "version"])


def utcnow_iso():
    return datetime.now(timezone.utc).isoformat()


def resolve_path(data, path):
    """Follow a dotted field path into nested maps; _MISSING when absent."""
    cur = data
    for part in path.split('.'):
        if not isinstance(cur, dict) or part not in cur:
            return _MISSING
        cur = cur[part]
    return cur


def match_filters(data, filters):
    for path, op, value in filters:
        found = resolve_path(data, path)
        if op == '==':
            if found is _MISSING or found != value:
                return False
        elif op == '!=':
            if found is _MISSING or found == value:
                return False
        elif op == 'in':
            if found is _MISSING or found not in value:
                return False
        else:
            raise ValueError(f"unsupported filter operator: {op!r}")
    return True


def _resolve_value(value, now):
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: _resolve_value(v, now) for k, v in value.items() if v is not DELETE}
    if isinstance(value, (list, tuple)):
        return [_resolve_value(v, now) for v in value]
    return value


def _deep_merge(base, incoming, now):
    out = dict(base)
    for key, value in incoming.items():
        if value is DELETE:
            out.pop(key, None)
        elif isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value, now)
        else:
            out[key] = _resolve_value(value, now)
    return out


def _apply_update(base, fields, now):
    """Apply update() fields; keys may be dotted paths into nested maps."""
    out = copy.deepcopy(base)
    for path, value in fields.items():
        parts = path.split('.')
        target = out
        for part in parts[:-1]:
            nxt = target.get(part)
            if not isinstance(nxt, dict):
                nxt = {}
                target[part] = nxt
            target = nxt
        if value is DELETE:
            target.pop(parts[-1], None)
        else:
            target[parts[-1]] = _resolve_value(value, now)
    return out


class DocumentStore:
    """Interface shared by the SQL and Firestore backends."""

    def get(self, collection, doc_id):
        data, _ = self.get_versioned(collection, doc_id)
        return data

    def get_versioned(self, collection, doc_id):
        raise NotImplementedError

    def set(self, collection, doc_id, data, merge=False):
        raise NotImplementedError

    def update(self, collection, doc_id, fields):
        raise NotImplementedError

    def query(self, collection, filters=()):
        raise NotImplementedError

    def compare_and_set(self, collection, doc_id, data, expected_version):
        raise NotImplementedError


class SqlDocumentStore(DocumentStore):
    """Documents kept as JSON rows in a single Flask-SQLAlchemy table."""

    @contextmanager
    def _guard(self, op, collection, doc_id=None):
        try:
            yield
        except (DocumentNotFound, VersionConflict):
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception('document store %s failed for %s/%s', op, collection, doc_id)
            raise PersistenceError(f"{op} {collection}/{doc_id} failed: {e}") from e

    def _row(self, collection, doc_id):
        return Document.query.filter_by(collection=collection, doc_id=str(doc_id)).first()

    def get_versioned(self, collection, doc_id):
        with self._guard('get', collection, doc_id):
            row = self._row(collection, doc_id)
            if row is None:
                return None, 0
            return copy.deepcopy(row.data), row.version

    def set(self, collection, doc_id, data, merge=False):
        now = utcnow_iso()
        with self._guard('set', collection, doc_id):
            row = self._row(collection, doc_id)
            if row is None:
                row = Document(collection=collection, doc_id=str(doc_id),
                               data=_resolve_value(data, now), version=1)
                db.session.add(row)
            else:
                if merge:
                    row.data = _deep_merge(row.data or {}, data, now)
                else:
                    row.data = _resolve_value(data, now)
                row.version = (row.version or 0) + 1
            db.session.commit()

    def update(self, collection, doc_id, fields):
        now = utcnow_iso()
        with self._guard('update', collection, doc_id):
            row = self._row(collection, doc_id)
            if row is None:
                raise DocumentNotFound(collection, doc_id)
            row.data = _apply_update(row.data or {}, fields, now)
            row.version = (row.version or 0) + 1
            db.session.commit()

    def query(self, collection, filters=()):
        with self._guard('query', collection):
            rows = Document.query.filter_by(collection=collection).order_by(Document.id.asc()).all()
            return [Snapshot(r.doc_id, copy.deepcopy(r.data), r.version)
                    for r in rows if match_filters(r.data or {}, filters)]

    def compare_and_set(self, collection, doc_id, data, expected_version):
        now = utcnow_iso()
        payload = _resolve_value(data, now)
        with self._guard('compare_and_set', collection, doc_id):
            if expected_version == 0:
                db.session.add(Document(collection=collection, doc_id=str(doc_id), data=payload, version=1))
                try:
                    db.session.commit()
                except IntegrityError:
                    db.session.rollback()
                    _, actual = self.get_versioned(collection, doc_id)
                    raise VersionConflict(collection, doc_id, expected_version, actual)
                return 1
            updated = (
                Document.query
                .filter_by(collection=collection, doc_id=str(doc_id), version=expected_version)
                .update({'data': payload, 'version': expected_version + 1}, synchronize_session=False)
            )
            if not updated:
                db.session.rollback()
                _, actual = self.get_versioned(collection, doc_id)
                raise VersionConflict(collection, doc_id, expected_version, actual)
            db.session.commit()
            return expected_version + 1


def init_store(app):
    backend = app.config.get('STORE_BACKEND', 'sql')
    if backend == 'sql':
        store = SqlDocumentStore()
    elif backend == 'firestore':
        from .firestore_store import FirestoreDocumentStore
        store = FirestoreDocumentStore.from_credentials(app.config.get('FIREBASE_CREDENTIALS'))
    else:
        raise ValueError(f"unknown STORE_BACKEND: {backend!r}")
    app.extensions['document_store'] = store
    app.logger.info('document store backend: %s', backend)
    return store


def get_store():
    return current_app.extensions['document_store']
