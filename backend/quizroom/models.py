from quizroom import db
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional
import random
import string
import uuid


class SessionCodeExhausted(Exception):
    """Raised when no unused session code was found within the retry bound."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def generate_session_code(is_taken: Callable[[str], bool], length=6, max_attempts=20):
    """Generate a short session code that `is_taken` does not already know."""
    for _ in range(max_attempts):
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not is_taken(code):
            return code
    raise SessionCodeExhausted(f'No free session code after {max_attempts} attempts')


def generate_player_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Player:
    id: str
    nickname: str
    score: float = 0
    is_host: bool = False

    def to_dict(self):
        return {
            'id': self.id,
            'nickname': self.nickname,
            'score': self.score,
            'isHost': self.is_host,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            nickname=data.get('nickname', ''),
            score=data.get('score', 0),
            is_host=bool(data.get('isHost', False)),
        )


@dataclass
class Session:
    code: str
    name: str
    host_player_id: str
    created_at: datetime
    players: List[Player] = field(default_factory=list)
    is_active: bool = False  # lobby until the host starts it

    def find_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def remove_player(self, player_id: str) -> bool:
        before = len(self.players)
        self.players = [p for p in self.players if p.id != player_id]
        return len(self.players) != before

    @property
    def host_orphaned(self) -> bool:
        """True once the host has left and nobody holds host_player_id."""
        return self.find_player(self.host_player_id) is None

    def is_expired(self, now: datetime, ttl_sec: int) -> bool:
        return (now - self.created_at).total_seconds() >= ttl_sec

    def to_dict(self):
        return {
            'code': self.code,
            'name': self.name,
            'hostPlayerId': self.host_player_id,
            'players': [p.to_dict() for p in self.players],
            'createdAt': format_timestamp(self.created_at),
            'isActive': self.is_active,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            code=data['code'],
            name=data.get('name', ''),
            host_player_id=data['hostPlayerId'],
            created_at=parse_timestamp(data['createdAt']),
            players=[Player.from_dict(p) for p in data.get('players', [])],
            is_active=bool(data.get('isActive', False)),
        )


class SessionSnapshot(db.Model):
    """One persisted session record; the table is rewritten on every save."""
    __tablename__ = 'session_snapshot'
    code = db.Column(db.String(16), primary_key=True)
    payload = db.Column(db.Text, nullable=False)  # JSON-encoded session record
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
