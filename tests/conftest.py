import os
import random
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sac_portal import create_app
from sac_portal.extensions import db
from sac_portal.models.user import User
from sac_portal.services.grading import ScoreAggregator
from sac_portal.services.scheduler import SlotScheduler
from sac_portal.services.store import get_store


@pytest.fixture
def app():
    app = create_app('config.TestConfig')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def store(app):
    return get_store()


@pytest.fixture
def scheduler(store):
    return SlotScheduler(store, round_one_capacity=5)


@pytest.fixture
def aggregator(store):
    return ScoreAggregator(store, max_attempts=3, rng=random.Random(7))


@pytest.fixture
def make_application(store):
    def _make(app_id, position="Secretary", status="submitted", name=None, **extra):
        data = {
            'id': app_id,
            'userId': app_id,
            'position': position,
            'status': status,
            'answers': {},
            'progress': 100 if status != 'draft' else 40,
            'userProfile': {'fullName': name or app_id.title(), 'studentNumber': '000000', 'grade': '11'},
        }
        data.update(extra)
        store.set('applications', app_id, data)
        return data
    return _make


@pytest.fixture
def make_user(app):
    def _make(uid, role, name=None, password="correct-horse"):
        u = User(uid=uid, email=f"{uid}@sac-school.ca", name=name or uid.title(), role=role)
        u.set_password(password)
        db.session.add(u)
        db.session.commit()
        return u
    return _make


@pytest.fixture
def login(app, make_user):
    def _login(client, uid, role, name=None):
        make_user(uid, role, name=name)
        resp = client.post('/auth/login', json={'email': f"{uid}@sac-school.ca", 'password': 'correct-horse'})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()
    return _login
