import os
import sys
from datetime import datetime, timedelta

import pytest

# Ensure the backend root (containing the `demoday` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from demoday import create_app, db, socketio
from demoday.broadcaster import TOPICS
from demoday.services.coordinator import get_coordinator


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:5173']
    TIMER_DEFAULT_DURATION_SEC = 300
    TIMER_POLL_SEC = 1
    VOTING_OPEN_DEFAULT = True
    QUEUE_SHUFFLE_SEED = 7


class FakeClock:
    """Manually advanced stand-in for ``utcnow``."""

    def __init__(self, start=None):
        self.current = start or datetime(2025, 9, 14, 18, 0, 0)

    def __call__(self):
        return self.current

    def advance(self, seconds):
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


class Recorder:
    """Observer that keeps every delivered ``(topic, event, payload)``."""

    def __init__(self):
        self.events = []

    def __call__(self, topic, event, payload):
        self.events.append((topic, event, payload))

    def names(self, topic=None):
        return [e for t, e, _ in self.events if topic is None or t == topic]

    def payloads(self, event):
        return [p for _, e, p in self.events if e == event]

    def clear(self):
        self.events.clear()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import demoday.models  # noqa: F401
        db.create_all()
        get_coordinator(application).init()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def file_app(tmp_path):
    """App on a SQLite file so worker threads each get their own connection."""

    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'demoday.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'timeout': 30, 'check_same_thread': False}}

    application = create_app(FileConfig)
    with application.app_context():
        import demoday.models  # noqa: F401
        db.create_all()
        get_coordinator(application).init()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def coordinator(flask_app):
    return get_coordinator(flask_app)


@pytest.fixture()
def clock(coordinator):
    fake = FakeClock()
    coordinator.state.clock = fake
    return fake


@pytest.fixture()
def recorder(coordinator):
    rec = Recorder()
    for topic in TOPICS:
        coordinator.broadcaster.subscribe(topic, rec)
    return rec


@pytest.fixture()
def make_team(flask_app):
    from demoday.models import Team

    def _make(name, presented=False, order=None):
        team = Team(name=name, has_presented=presented, presentation_order=order)
        db.session.add(team)
        db.session.commit()
        return team
    return _make


@pytest.fixture()
def make_user(flask_app):
    from demoday.models import User

    def _make(username, team=None):
        user = User(username=username, team_id=team.id if team is not None else None)
        db.session.add(user)
        db.session.commit()
        return user
    return _make
