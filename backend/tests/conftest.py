import os
import sys
import pytest

# Ensure the backend root (containing the `playhall` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from playhall import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    HITS_NEEDED = 3
    POINTS_PER_CATCH = 10
    SPAWN_INTERVAL_SEC = 1.5
    TARGET_SPAWN_CHANCE = 0.4
    FALL_SPEED = 200
    TICK_INTERVAL_SEC = 0.01
    SESSION_IDLE_TTL_SEC = 3600
    OWNER_GRACE_SEC = 0


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import playhall.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def file_backed_app(tmp_path):
    """An app on a SQLite file, so each thread gets its own connection."""
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'playhall.db'}"

    application = create_app(FileConfig)
    with application.app_context():
        import playhall.models  # noqa: F401
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
def new_session(client):
    def _create(**payload):
        res = client.post('/api/sessions/create', json=payload)
        assert res.status_code == 201
        return res.get_json()['session_code']
    return _create
