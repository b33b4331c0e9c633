import os
import sys
import pytest

# Ensure the backend root (containing the `groupeval` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from groupeval import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = 'DEBUG'
    DEFAULT_PARTICIPANT_COUNT = 3
    MIN_PARTICIPANTS = 1
    MAX_PARTICIPANTS = 10
    DEFAULT_THRESHOLD = 50
    ADMIN_SECRET_MIN_LENGTH = 6
    JOIN_CODE_LENGTH = 6


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import groupeval.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def threaded_app(tmp_path):
    """App backed by a SQLite file so worker threads get their own connections."""
    db_path = tmp_path / 'groupeval.db'

    class ThreadedConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{db_path}'

    application = create_app(ThreadedConfig)
    with application.app_context():
        import groupeval.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


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
def make_session(client):
    """Create a session over HTTP and return its JSON payload."""
    counter = {'n': 0}

    def _make(participant_count=2, threshold=50, admin_secret=None, name='Friday night'):
        counter['n'] += 1
        payload = {
            'name': name,
            'admin_secret': admin_secret or f'secret-{counter["n"]:03d}',
            'participant_count': participant_count,
            'threshold': threshold,
        }
        res = client.post('/api/sessions', json=payload)
        assert res.status_code == 201, res.get_json()
        data = res.get_json()
        data['admin_secret'] = payload['admin_secret']
        return data

    return _make
