"""Firestore backend for the document store (firebase-admin SDK).

The document version lives in a reserved ``_version`` field so that
compare-and-set can be checked inside a Firestore transaction.
"""
import os
from datetime import datetime

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter
from flask import current_app

from ..errors import DocumentNotFound, PersistenceError, VersionConflict
from .store import DELETE, SERVER_TIMESTAMP, DocumentStore, Snapshot

VERSION_FIELD = "_version"


def _encode(value):
    if value is SERVER_TIMESTAMP:
        return firestore.SERVER_TIMESTAMP
    if value is DELETE:
        return firestore.DELETE_FIELD
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


def _decode(value):
    # timestamps come back as datetimes; the SQL backend stores ISO strings
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


def _split(raw):
    data = _decode(raw or {})
    version = data.pop(VERSION_FIELD, 1)
    return data, version


class FirestoreDocumentStore(DocumentStore):

    def __init__(self, client):
        self.client = client

    @classmethod
    def from_credentials(cls, cred_path):
        if not cred_path:
            raise RuntimeError("FIREBASE_CREDENTIALS is required when STORE_BACKEND=firestore")
        if not os.path.exists(cred_path):
            raise RuntimeError(f"Firebase credentials file not found at: {cred_path}")
        try:
            app = firebase_admin.get_app()
        except ValueError:
            app = firebase_admin.initialize_app(credentials.Certificate(cred_path))
        return cls(firestore.client(app))

    def _ref(self, collection, doc_id):
        return self.client.collection(collection).document(str(doc_id))

    def _fail(self, op, collection, doc_id, e):
        current_app.logger.exception('firestore %s failed for %s/%s', op, collection, doc_id)
        return PersistenceError(f"{op} {collection}/{doc_id} failed: {e}")

    def get_versioned(self, collection, doc_id):
        try:
            snap = self._ref(collection, doc_id).get()
        except google_exceptions.GoogleAPIError as e:
            raise self._fail('get', collection, doc_id, e) from e
        if not snap.exists:
            return None, 0
        return _split(snap.to_dict())

    def set(self, collection, doc_id, data, merge=False):
        ref = self._ref(collection, doc_id)
        payload = _encode(data)

        # a full replace drops _version, so carry it forward explicitly
        @firestore.transactional
        def _replace(transaction):
            snap = ref.get(transaction=transaction)
            current = _split(snap.to_dict())[1] if snap.exists else 0
            payload[VERSION_FIELD] = current + 1
            transaction.set(ref, payload)

        try:
            if merge:
                payload[VERSION_FIELD] = firestore.Increment(1)
                ref.set(payload, merge=True)
            else:
                _replace(self.client.transaction())
        except google_exceptions.GoogleAPIError as e:
            raise self._fail('set', collection, doc_id, e) from e

    def update(self, collection, doc_id, fields):
        payload = _encode(fields)
        payload[VERSION_FIELD] = firestore.Increment(1)
        try:
            self._ref(collection, doc_id).update(payload)
        except google_exceptions.NotFound as e:
            raise DocumentNotFound(collection, doc_id) from e
        except google_exceptions.GoogleAPIError as e:
            raise self._fail('update', collection, doc_id, e) from e

    def query(self, collection, filters=()):
        q = self.client.collection(collection)
        for path, op, value in filters:
            q = q.where(filter=FieldFilter(path, op, value))
        try:
            out = []
            for snap in q.stream():
                data, version = _split(snap.to_dict())
                out.append(Snapshot(snap.id, data, version))
            return out
        except google_exceptions.GoogleAPIError as e:
            raise self._fail('query', collection, None, e) from e

    def compare_and_set(self, collection, doc_id, data, expected_version):
        ref = self._ref(collection, doc_id)
        payload = _encode(data)

        @firestore.transactional
        def _cas(transaction):
            snap = ref.get(transaction=transaction)
            current = _split(snap.to_dict())[1] if snap.exists else 0
            if current != expected_version:
                raise VersionConflict(collection, doc_id, expected_version, current)
            payload[VERSION_FIELD] = current + 1
            transaction.set(ref, payload)
            return current + 1

        try:
            return _cas(self.client.transaction())
        except google_exceptions.GoogleAPIError as e:
            raise self._fail('compare_and_set', collection, doc_id, e) from e
