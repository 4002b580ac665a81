"""Backing stores for the session snapshot.

Both backends read and write the whole code -> record mapping at once.
Errors are raised to the caller; the session store decides what to do
with them.
"""

import json
import os
import tempfile
from typing import Any, Dict

from quizroom import db
from quizroom.models import SessionSnapshot, parse_timestamp


Snapshot = Dict[str, Dict[str, Any]]


class JsonFileBackend:
    """Snapshot kept as a pretty-printed JSON object on disk."""

    def __init__(self, path: str):
        self.path = path

    def read(self) -> Snapshot:
        with open(self.path, 'r', encoding='utf-8') as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f'{self.path} does not hold a JSON object')
        return data

    def write(self, snapshot: Snapshot) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix='.sessions-', suffix='.json', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(snapshot, fh, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)

    def __repr__(self):
        return f'JsonFileBackend(path={self.path!r})'


class SqlSnapshotBackend:
    """Snapshot kept in the session_snapshot table, one row per session."""

    def __init__(self, app):
        self.app = app

    def read(self) -> Snapshot:
        with self.app.app_context():
            rows = SessionSnapshot.query.all()
            return {row.code: json.loads(row.payload) for row in rows}

    def write(self, snapshot: Snapshot) -> None:
        with self.app.app_context():
            try:
                SessionSnapshot.query.delete()
                for code, record in snapshot.items():
                    db.session.add(SessionSnapshot(
                        code=code,
                        payload=json.dumps(record),
                        created_at=parse_timestamp(record['createdAt']),
                    ))
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

    def clear(self) -> None:
        with self.app.app_context():
            db.create_all()
            SessionSnapshot.query.delete()
            db.session.commit()

    def __repr__(self):
        return f"SqlSnapshotBackend(uri={self.app.config.get('SQLALCHEMY_DATABASE_URI')!r})"


def backend_from_config(app):
    kind = (app.config.get('SESSION_STORE_BACKEND') or 'file').lower()
    if kind == 'sql':
        return SqlSnapshotBackend(app)
    if kind == 'file':
        return JsonFileBackend(app.config.get('SESSION_STORE_PATH', './sessions.json'))
    raise ValueError(f'Unknown SESSION_STORE_BACKEND: {kind}')
