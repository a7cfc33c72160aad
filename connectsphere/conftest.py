# connectsphere/conftest.py
"""
Shared pytest fixtures.

Services receive their Firestore client and Storage bucket through the
constructor, so tests hand them the in-memory doubles below instead of a
live Firebase project. The doubles cover the subset of the client API the
services call: collection/document references, equality and ordering
queries, batched writes, get_all, field transforms and on_snapshot.
"""

import copy
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from firebase_admin import firestore
from google.api_core.exceptions import NotFound, ServiceUnavailable

from connectsphere.utils.datetime_utils import DateTimeUtils


# =====================================================================================
# Firestore test double
# =====================================================================================

def _resolve_transforms(current: dict, changes: dict) -> dict:
    resolved = {}
    for key, value in changes.items():
        existing = current.get(key)
        if value is firestore.SERVER_TIMESTAMP:
            resolved[key] = DateTimeUtils.now()
        elif isinstance(value, firestore.ArrayUnion):
            merged = list(existing or [])
            merged.extend(v for v in value.values if v not in merged)
            resolved[key] = merged
        elif isinstance(value, firestore.ArrayRemove):
            resolved[key] = [v for v in (existing or []) if v not in value.values]
        elif isinstance(value, firestore.Increment):
            resolved[key] = (existing or 0) + value.value
        elif isinstance(value, dict) and isinstance(existing, dict):
            resolved[key] = {**existing, **_resolve_transforms(existing, value)}
        else:
            resolved[key] = copy.deepcopy(value)
    return resolved


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field):
        return (self._data or {}).get(field)


class FakeDocumentReference:
    def __init__(self, db, path):
        self._db = db
        self.path = path
        self.id = path.rsplit('/', 1)[-1]

    @property
    def parent(self):
        return FakeCollection(self._db, self.path.rsplit('/', 1)[0])

    def collection(self, name):
        return FakeCollection(self._db, f"{self.path}/{name}")

    def get(self, transaction=None):
        return FakeSnapshot(self, self._db._docs.get(self.path))

    def set(self, data, merge=False):
        self._db._commit([('set', self, data, merge)])

    def update(self, data):
        self._db._commit([('update', self, data, False)])

    def delete(self):
        self._db._commit([('delete', self, None, False)])


class FakeQuery:
    def __init__(self, db, path, filters=(), orders=(), limit=None):
        self._db = db
        self._path = path
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._limit = limit

    def where(self, field, op, value):
        return FakeQuery(self._db, self._path, self._filters + ((field, op, value),), self._orders, self._limit)

    def order_by(self, field, direction=firestore.Query.ASCENDING):
        return FakeQuery(self._db, self._path, self._filters, self._orders + ((field, direction),), self._limit)

    def limit(self, count):
        return FakeQuery(self._db, self._path, self._filters, self._orders, count)

    def _matches(self, data):
        for field, op, value in self._filters:
            if field not in data:
                return False
            actual = data[field]
            if op == '==' and actual != value:
                return False
            if op == '!=' and actual == value:
                return False
            if op == 'in' and actual not in value:
                return False
            if op == 'array_contains' and value not in (actual or []):
                return False
        return True

    def _run(self):
        self._db._check_failure('read', self._path)
        prefix = self._path + '/'
        rows = []
        for path, data in self._db._docs.items():
            if not path.startswith(prefix) or '/' in path[len(prefix):]:
                continue
            if self._matches(data):
                rows.append((path, data))
        for field, direction in reversed(self._orders):
            rows = [row for row in rows if field in row[1]]
            rows.sort(key=lambda row: row[1][field], reverse=direction == firestore.Query.DESCENDING)
        if self._limit is not None:
            rows = rows[:self._limit]
        return [FakeSnapshot(FakeDocumentReference(self._db, path), data) for path, data in rows]

    def stream(self, transaction=None):
        return iter(self._run())

    def get(self, transaction=None):
        return self._run()

    def on_snapshot(self, callback):
        watch = FakeWatch(self._db, self, callback)
        self._db._watches.append(watch)
        watch.deliver()
        return watch


class FakeCollection(FakeQuery):
    def __init__(self, db, path):
        super().__init__(db, path)
        self.id = path.rsplit('/', 1)[-1]

    def document(self, document_id=None):
        return FakeDocumentReference(self._db, f"{self._path}/{document_id or uuid.uuid4().hex[:20]}")

    def add(self, data, document_id=None):
        ref = self.document(document_id)
        ref.set(data)
        return DateTimeUtils.now(), ref


class FakeWatch:
    def __init__(self, db, query, callback):
        self._db = db
        self._query = query
        self._callback = callback
        self.active = True

    def deliver(self):
        if self.active:
            self._callback(self._query._run(), [], DateTimeUtils.now())

    def unsubscribe(self):
        self.active = False
        if self in self._db._watches:
            self._db._watches.remove(self)


class FakeBatch:
    def __init__(self, db):
        self._db = db
        self._ops = []

    def set(self, reference, data, merge=False):
        self._ops.append(('set', reference, data, merge))

    def update(self, reference, data):
        self._ops.append(('update', reference, data, False))

    def delete(self, reference):
        self._ops.append(('delete', reference, None, False))

    def commit(self):
        self._db._commit(list(self._ops))
        self._ops = []


class FakeFirestore:
    """In-memory stand-in for ``firestore.client()`` used by the tests."""

    def __init__(self):
        self._docs = {}
        self._watches = []
        self._failures = []
        self.commits = 0

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def get_all(self, references):
        for reference in references:
            yield reference.get()

    def fail_on(self, op, path_prefix='', after=0):
        """Make the (after+1)-th matching write/read raise ServiceUnavailable."""
        self._failures.append({'op': op, 'prefix': path_prefix, 'after': after})

    def _check_failure(self, op, path):
        for rule in self._failures:
            if rule['op'] == op and path.startswith(rule['prefix']):
                if rule['after'] > 0:
                    rule['after'] -= 1
                    continue
                self._failures.remove(rule)
                raise ServiceUnavailable(f"injected {op} failure at {path}")

    def _commit(self, ops):
        # Validate everything before applying anything so a batch is all-or-nothing.
        for kind, ref, _, _ in ops:
            self._check_failure(kind, ref.path)
            if kind == 'update' and ref.path not in self._docs:
                raise NotFound(f"No document to update: {ref.path}")
        for kind, ref, data, merge in ops:
            current = self._docs.get(ref.path, {})
            if kind == 'delete':
                self._docs.pop(ref.path, None)
            elif kind == 'set' and not merge:
                self._docs[ref.path] = _resolve_transforms({}, data)
            else:
                self._docs[ref.path] = {**current, **_resolve_transforms(current, data)}
        self.commits += 1
        for watch in list(self._watches):
            watch.deliver()

    # --- test helpers ---
    def seed(self, path, data):
        self._docs[path] = copy.deepcopy(data)

    def exists(self, path):
        return path in self._docs

    def data(self, path):
        return copy.deepcopy(self._docs.get(path))

    def children(self, path):
        prefix = path + '/'
        return sorted(p for p in self._docs if p.startswith(prefix) and '/' not in p[len(prefix):])


# =====================================================================================
# Cloud Storage test double
# =====================================================================================

class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name

    @property
    def public_url(self):
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}"

    def upload_from_string(self, data, content_type=None):
        if self.bucket.fail_uploads:
            raise ServiceUnavailable("injected upload failure")
        self.bucket.objects[self.name] = {'data': data, 'content_type': content_type, 'public': False}

    def exists(self):
        return self.name in self.bucket.objects

    def make_public(self):
        self.bucket.objects[self.name]['public'] = True

    def delete(self):
        if self.name not in self.bucket.objects:
            raise NotFound(self.name)
        del self.bucket.objects[self.name]

    def generate_signed_url(self, version, expiration, method, content_type=None):
        return f"https://signed.example/{self.name}?method={method}"


class FakeBucket:
    def __init__(self, name='connectsphere-test.appspot.com'):
        self.name = name
        self.objects = {}
        self.fail_uploads = False

    def blob(self, name):
        return FakeBlob(self, name)


# =====================================================================================
# Fixtures
# =====================================================================================

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """A fixed timestamp ``minutes`` after T0, for deterministic ordering."""
    return T0 + timedelta(minutes=minutes)


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def storage_service(bucket):
    from connectsphere.services.storage_service import StorageService
    return StorageService(bucket=bucket)


@pytest.fixture
def make_user(db):
    def _make_user(uid, name=None, email=None, avatar=None):
        data = {'uid': uid, 'name': name if name is not None else uid.title(), 'email': email or f"{uid}@example.com"}
        if avatar:
            data['avatar'] = avatar
        db.seed(f"users/{uid}", data)
        return data
    return _make_user


@pytest.fixture
def make_post(db):
    def _make_post(uid, post_id, created_at, title="Title", content="Body", likes=None):
        db.seed(f"users/{uid}/posts/{post_id}", {
            'title': title, 'content': content, 'photo_url': None,
            'likes': list(likes or []), 'created_at': created_at, 'updated_at': created_at,
        })
    return _make_post


@pytest.fixture
def make_comment(db):
    def _make_comment(uid, post_id, comment_id, author_id, created_at, text="nice"):
        db.seed(f"users/{uid}/posts/{post_id}/comments/{comment_id}", {
            'text': text, 'author': author_id.title(), 'author_id': author_id, 'created_at': created_at,
        })
    return _make_comment


@pytest.fixture
def befriend(db):
    def _befriend(a, b):
        db.seed(f"users/{a}/friends/{b}", {'uid': b, 'name': b.title(), 'avatar': None, 'created_at': T0})
        db.seed(f"users/{b}/friends/{a}", {'uid': a, 'name': a.title(), 'avatar': None, 'created_at': T0})
    return _befriend


@pytest.fixture
def app(db, bucket):
    from connectsphere import create_app
    return create_app('testing', db=db, bucket=bucket)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    from flask_jwt_extended import create_access_token

    def _headers(uid):
        with app.app_context():
            token = create_access_token(identity=uid)
        return {'Authorization': f"Bearer {token}"}
    return _headers
