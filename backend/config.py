import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    PORT = int(os.environ.get('PORT', '4000'))
    # Allowed browser origins; '*' when neither is set
    FRONTEND_URL = os.environ.get('FRONTEND_URL')
    FRONTEND_URL2 = os.environ.get('FRONTEND_URL2')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Sessions older than this are dropped when the snapshot is loaded (seconds)
    SESSION_TTL_SEC = int(os.environ.get('SESSION_TTL_SEC', str(24 * 60 * 60)))
    # Snapshot backend: 'file' (JSON on disk) or 'sql' (session_snapshot table)
    SESSION_STORE_BACKEND = os.environ.get('SESSION_STORE_BACKEND', 'file')
    SESSION_STORE_PATH = os.environ.get('SESSION_STORE_PATH', './sessions.json')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///sessions.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_CODE_LENGTH = int(os.environ.get('SESSION_CODE_LENGTH', '6'))
    SESSION_CODE_MAX_ATTEMPTS = int(os.environ.get('SESSION_CODE_MAX_ATTEMPTS', '20'))
    # Per-client HTTP limit for the informational routes (Flask-Limiter)
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '100 per 15 minutes')
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
