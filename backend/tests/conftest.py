import os
import sys
import pytest

# Ensure the backend root (containing the `quizroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizroom import create_app, limiter, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    PORT = 4000
    FRONTEND_URL = None
    FRONTEND_URL2 = None
    SOCKETIO_NAMESPACE = '/'
    SESSION_TTL_SEC = 24 * 60 * 60
    SESSION_STORE_BACKEND = 'file'
    SESSION_STORE_PATH = None  # filled per test
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_CODE_LENGTH = 6
    SESSION_CODE_MAX_ATTEMPTS = 20
    RATELIMIT_DEFAULT = '100 per 15 minutes'
    RATELIMIT_STORAGE_URI = 'memory://'


@pytest.fixture()
def store_path(tmp_path):
    return str(tmp_path / 'sessions.json')


@pytest.fixture()
def flask_app(store_path):
    config = type('PerTestConfig', (TestConfig,), {'SESSION_STORE_PATH': store_path})
    application = create_app(config)
    with application.app_context():
        yield application
    limiter.reset()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def lifecycle(flask_app):
    return flask_app.extensions['quizroom']


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
