from datetime import datetime, timedelta, timezone

from flask_login import UserMixin

from writecast import db

FILL_BLANK = 'fill-blank'
FRAME_WORD = 'frame-word'
PUZZLE_MODES = (FILL_BLANK, FRAME_WORD)

IN_PROGRESS = 'in_progress'
WON = 'won'
LOST = 'lost'
TERMINAL_STATUSES = (WON, LOST)

INVITE_PENDING = 'pending'
INVITE_ACCEPTED = 'accepted'
INVITE_COMPLETED = 'completed'


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() + 'Z' if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    # numeric fid for Farcaster users, anon_<token> for anonymous players
    farcaster_id = db.Column(db.String(128), unique=True, nullable=False, index=True)
    username = db.Column(db.String(64), nullable=True, index=True)
    display_name = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    @property
    def is_anonymous_player(self):
        return self.farcaster_id.startswith('anon_')

    def to_dict(self):
        return {
            'id': self.id,
            'farcaster_id': None if self.is_anonymous_player else self.farcaster_id,
            'username': self.username,
            'display_name': self.display_name,
            'is_anonymous': self.is_anonymous_player,
        }


class Puzzle(db.Model):
    __tablename__ = 'puzzle'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(16), unique=True, nullable=False, index=True)
    mode = db.Column(db.String(16), nullable=False)  # fill-blank, frame-word
    body_text = db.Column(db.Text, nullable=False)
    hidden_word = db.Column(db.String(64), nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    # Aggregates, only ever changed through atomic increments
    total_players = db.Column(db.Integer, default=0, nullable=False)
    successful_guesses = db.Column(db.Integer, default=0, nullable=False)
    failed_guesses = db.Column(db.Integer, default=0, nullable=False)
    total_attempts = db.Column(db.Integer, default=0, nullable=False)

    author = db.relationship('User', backref=db.backref('puzzles', lazy='dynamic'))
    sessions = db.relationship('GameSession', back_populates='puzzle', lazy='dynamic')

    def __init__(self, lifetime_hours=24, **kwargs):
        super(Puzzle, self).__init__(**kwargs)
        if self.created_at is None:
            self.created_at = utcnow()
        if self.expires_at is None:
            self.expires_at = self.created_at + timedelta(hours=lifetime_hours)
        for counter in ('total_players', 'successful_guesses', 'failed_guesses', 'total_attempts'):
            if getattr(self, counter) is None:
                setattr(self, counter, 0)

    def is_expired(self, now=None):
        return (now or utcnow()) >= self.expires_at

    def stats(self):
        return {
            'total_players': self.total_players,
            'successful_guesses': self.successful_guesses,
            'failed_guesses': self.failed_guesses,
            'total_attempts': self.total_attempts,
        }

    def to_dict(self, include_answer=False):
        data = {
            'id': self.id,
            'code': self.code,
            'mode': self.mode,
            'author_id': self.author_id,
            'created_at': _iso(self.created_at),
            'expires_at': _iso(self.expires_at),
        }
        data.update(self.stats())
        if include_answer:
            data['body_text'] = self.body_text
            data['hidden_word'] = self.hidden_word
        return data


class GameSession(db.Model):
    __tablename__ = 'game_session'
    __table_args__ = (
        db.UniqueConstraint('puzzle_id', 'player_id', name='uq_game_session_puzzle_player'),
    )
    id = db.Column(db.Integer, primary_key=True)
    puzzle_id = db.Column(db.Integer, db.ForeignKey('puzzle.id'), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    status = db.Column(db.String(16), default=IN_PROGRESS, nullable=False)  # in_progress, won, lost
    total_attempts = db.Column(db.Integer, default=0, nullable=False)
    bonus_attempts = db.Column(db.Integer, default=0, nullable=False)
    has_used_invite = db.Column(db.Boolean, default=False, nullable=False)
    points_earned = db.Column(db.Integer, default=0, nullable=False)
    invite_id = db.Column(db.Integer, db.ForeignKey('invite.id'), nullable=True)
    started_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    puzzle = db.relationship('Puzzle', back_populates='sessions')
    player = db.relationship('User', foreign_keys=[player_id])
    attempts = db.relationship('Attempt', back_populates='session', lazy='dynamic', order_by='Attempt.attempt_number')

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def max_attempts(self, base_attempts):
        return base_attempts + (self.bonus_attempts or 0)

    def to_dict(self, base_attempts=None):
        data = {
            'id': self.id,
            'puzzle_id': self.puzzle_id,
            'player_id': self.player_id,
            'status': self.status,
            'total_attempts': self.total_attempts,
            'bonus_attempts': self.bonus_attempts,
            'has_used_invite': self.has_used_invite,
            'points_earned': self.points_earned,
            'invite_id': self.invite_id,
            'started_at': _iso(self.started_at),
            'completed_at': _iso(self.completed_at),
        }
        if base_attempts is not None:
            data['max_attempts'] = self.max_attempts(base_attempts)
            data['attempts_remaining'] = max(0, data['max_attempts'] - self.total_attempts)
        return data


class Attempt(db.Model):
    __tablename__ = 'attempt'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'attempt_number', name='uq_attempt_session_number'),
    )
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    guess_text = db.Column(db.String(128), nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False)
    attempt_number = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    session = db.relationship('GameSession', back_populates='attempts')

    def to_dict(self):
        return {
            'attempt_number': self.attempt_number,
            'guess': self.guess_text,
            'is_correct': self.is_correct,
            'created_at': _iso(self.created_at),
        }


class Invite(db.Model):
    __tablename__ = 'invite'
    __table_args__ = (
        db.UniqueConstraint('puzzle_id', 'inviter_id', name='uq_invite_puzzle_inviter'),
    )
    id = db.Column(db.Integer, primary_key=True)
    puzzle_id = db.Column(db.Integer, db.ForeignKey('puzzle.id'), nullable=False, index=True)
    inviter_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    invited_handle = db.Column(db.String(64), nullable=False, index=True)
    invited_player_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    status = db.Column(db.String(16), default=INVITE_PENDING, nullable=False)  # pending, accepted, completed
    inviter_earned_points = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    puzzle = db.relationship('Puzzle')
    inviter = db.relationship('User', foreign_keys=[inviter_id])
    invited_player = db.relationship('User', foreign_keys=[invited_player_id])

    def to_dict(self):
        return {
            'id': self.id,
            'puzzle_id': self.puzzle_id,
            'inviter_id': self.inviter_id,
            'invited_handle': self.invited_handle,
            'invited_player_id': self.invited_player_id,
            'status': self.status,
            'inviter_earned_points': self.inviter_earned_points,
            'created_at': _iso(self.created_at),
            'completed_at': _iso(self.completed_at),
        }


class WaitlistEntry(db.Model):
    __tablename__ = 'waitlist'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(254), unique=True, nullable=True)
    farcaster_username = db.Column(db.String(64), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'farcaster_username': self.farcaster_username,
            'created_at': _iso(self.created_at),
        }
