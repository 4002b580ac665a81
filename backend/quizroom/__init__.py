from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
# Handlers run one at a time per connection; the store lock serializes across connections
socketio = SocketIO(async_mode=None, async_handlers=False)
limiter = Limiter(key_func=get_remote_address)


def allowed_origins(config):
    origins = [o for o in (config.get('FRONTEND_URL'), config.get('FRONTEND_URL2')) if o]
    return origins or '*'


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    origins = allowed_origins(flask_app.config)
    CORS(flask_app, origins=origins)
    limiter.init_app(flask_app)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from quizroom.main import main
    flask_app.register_blueprint(main)

    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')
    flask_app.extensions['quizroom'] = _build_lifecycle(flask_app, namespace)

    from quizroom.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=namespace)

    @click.command('store-reset')
    def store_reset_command():
        """Clears every persisted session from the configured backend."""
        lifecycle = flask_app.extensions['quizroom']
        lifecycle.store.backend.clear()
        lifecycle.store.load()
        click.echo(f'Session store has been reset ({lifecycle.store.backend!r})')

    flask_app.cli.add_command(store_reset_command)

    return flask_app


def _build_lifecycle(flask_app, namespace):
    from quizroom.models import generate_session_code
    from quizroom.services.sessions import Broadcaster, SessionLifecycle, SessionStore
    from quizroom.services.sessions.persistence import backend_from_config

    config = flask_app.config
    backend = backend_from_config(flask_app)
    if config.get('SESSION_STORE_BACKEND') == 'sql':
        with flask_app.app_context():
            db.create_all()

    if config.get('TESTING'):
        # Writes land before the handler returns so tests can inspect them
        spawn = lambda fn, *args: fn(*args)
    else:
        spawn = socketio.start_background_task

    store = SessionStore(
        backend,
        ttl_sec=config.get('SESSION_TTL_SEC', 24 * 60 * 60),
        spawn=spawn,
        logger=flask_app.logger,
    )
    store.load()

    def emit(event, payload, room):
        if payload is None:
            socketio.emit(event, to=room, namespace=namespace)
        else:
            socketio.emit(event, payload, to=room, namespace=namespace)

    length = config.get('SESSION_CODE_LENGTH', 6)
    attempts = config.get('SESSION_CODE_MAX_ATTEMPTS', 20)
    return SessionLifecycle(
        store,
        Broadcaster(store, emit, logger=flask_app.logger),
        code_factory=lambda: generate_session_code(
            lambda code: code in store, length=length, max_attempts=attempts),
        logger=flask_app.logger,
    )
