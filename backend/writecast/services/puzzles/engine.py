"""Guess session engine.

Owns the rules for how one player's attempts against one puzzle evolve:
attempt counting, the correctness check, win/loss, invite bonus attempts and
points. Each mutating call is a single transaction with one commit; storage
errors are rolled back and surfaced as ``PersistenceFailure`` without retry.

Per-session serialization relies on the database: the session row is read
``FOR UPDATE`` (ignored by SQLite) and the attempt slot is claimed with a
compare-and-swap on ``total_attempts``, backed by the unique
(session_id, attempt_number) constraint.
"""
from typing import NamedTuple, Optional

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from writecast import db
from writecast.errors import (
    AlreadyCompleted,
    AlreadyInvited,
    GuessConflict,
    InvalidGuess,
    InvalidHandle,
    IsAuthor,
    OutOfAttempts,
    PersistenceFailure,
    PuzzleExpired,
    PuzzleNotFound,
    WritecastError,
)
from writecast.models import (
    Attempt,
    GameSession,
    IN_PROGRESS,
    INVITE_PENDING,
    Invite,
    LOST,
    Puzzle,
    User,
    WON,
    utcnow,
)
from .invites import normalize_handle
from .matching import is_correct_guess, normalize_guess
from .scoring import points_for_win

MAX_GUESS_LENGTH = 128


class GuessResult(NamedTuple):
    is_correct: bool
    attempt_number: int
    points_earned: int
    session_status: str
    max_attempts: int
    can_invite: bool
    attempts_remaining: int

    def to_dict(self):
        return self._asdict()


def base_attempts() -> int:
    return int(current_app.config.get('BASE_ATTEMPTS', 3))


def invite_bonus_attempts() -> int:
    return int(current_app.config.get('INVITE_BONUS_ATTEMPTS', 1))


# ---- Reads ----

def get_puzzle_by_code(code: str, include_expired: bool = False, now=None) -> Puzzle:
    """Case-insensitive code lookup. Expired puzzles are only returned on request."""
    puzzle = Puzzle.query.filter_by(code=(code or '').strip().upper()).first()
    if not puzzle:
        raise PuzzleNotFound(f"Game not found: {(code or '').strip().upper()}")
    if not include_expired and puzzle.is_expired(now):
        raise PuzzleExpired(f"Game {puzzle.code} has ended")
    return puzzle


def reveal_puzzle(code: str) -> Puzzle:
    """Full puzzle regardless of expiry; callers decide whether to show the answer."""
    return get_puzzle_by_code(code, include_expired=True)


def start_or_resume_session(puzzle_id: int, player_id: int) -> Optional[GameSession]:
    """Read-only: the player's session on this puzzle, or None before the first guess."""
    return GameSession.query.filter_by(puzzle_id=puzzle_id, player_id=player_id).first()


def list_attempts(session: Optional[GameSession]) -> list:
    if session is None:
        return []
    return Attempt.query.filter_by(session_id=session.id).order_by(Attempt.attempt_number).all()


# ---- Persistence helpers ----

def _load_active_puzzle(puzzle_id: int, now) -> Puzzle:
    puzzle = db.session.get(Puzzle, puzzle_id)
    if not puzzle:
        raise PuzzleNotFound()
    if puzzle.is_expired(now):
        raise PuzzleExpired(f"Game {puzzle.code} has ended")
    return puzzle


def _lock_session(puzzle_id: int, player_id: int) -> Optional[GameSession]:
    return (
        GameSession.query
        .filter_by(puzzle_id=puzzle_id, player_id=player_id)
        .with_for_update()
        .execution_options(populate_existing=True)
        .first()
    )


def _create_session(puzzle: Puzzle, player_id: int, now, **fields) -> GameSession:
    """Insert the session row and count the new player on the puzzle.

    Losing a concurrent insert race for the same pair surfaces as
    ``GuessConflict``; the caller may resubmit.
    """
    session = GameSession(
        puzzle_id=puzzle.id,
        player_id=player_id,
        status=IN_PROGRESS,
        total_attempts=0,
        bonus_attempts=fields.pop('bonus_attempts', 0),
        has_used_invite=fields.pop('has_used_invite', False),
        points_earned=0,
        started_at=now,
        **fields,
    )
    db.session.add(session)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise GuessConflict() from exc
    _bump_counters(puzzle.id, total_players=1)
    current_app.logger.info(f"[session] puzzle={puzzle.code} player={player_id} created")
    return session


def _bump_counters(puzzle_id: int, **deltas) -> None:
    """Atomic ``col = col + n`` increments on the puzzle aggregates."""
    values = {name: getattr(Puzzle, name) + delta for name, delta in deltas.items()}
    db.session.execute(update(Puzzle).where(Puzzle.id == puzzle_id).values(**values))


def _claim_attempt(session_id: int, expected_attempts: int) -> bool:
    """Compare-and-swap the attempt counter from ``expected_attempts`` to the next value."""
    result = db.session.execute(
        update(GameSession)
        .where(
            GameSession.id == session_id,
            GameSession.total_attempts == expected_attempts,
            GameSession.status == IN_PROGRESS,
        )
        .values(total_attempts=GameSession.total_attempts + 1)
    )
    return result.rowcount == 1


def _raise_for_lost_claim(session: GameSession) -> None:
    """Explain a failed claim. Returns only when the session is out of attempts but still open."""
    db.session.refresh(session)
    if session.is_terminal:
        raise AlreadyCompleted(session)
    if session.total_attempts >= session.max_attempts(base_attempts()):
        return
    raise GuessConflict()


def _close_exhausted(puzzle: Puzzle, session: GameSession, now) -> None:
    """An open session with no attempts left is settled as a loss."""
    session.status = LOST
    session.points_earned = 0
    session.completed_at = now
    _bump_counters(puzzle.id, failed_guesses=1, total_attempts=session.total_attempts)
    current_app.logger.warning(
        f"[guess] puzzle={puzzle.code} player={session.player_id} out of attempts while open, closed as lost"
    )


def _run_atomically(label: str, fn):
    try:
        result = fn()
        db.session.commit()
        return result
    except WritecastError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[{label}] storage failure")
        raise PersistenceFailure() from exc


# ---- Mutations ----

def submit_guess(puzzle_id: int, player_id: int, guess_text: str, now=None) -> GuessResult:
    """Record one guess and advance the player's session.

    Raises PuzzleNotFound / PuzzleExpired, IsAuthor, InvalidGuess,
    AlreadyCompleted, OutOfAttempts, GuessConflict or PersistenceFailure.
    """
    now = now or utcnow()
    puzzle = _load_active_puzzle(puzzle_id, now)
    if puzzle.author_id == player_id:
        raise IsAuthor('You cannot guess your own game')
    guess = normalize_guess(guess_text)
    if not guess:
        raise InvalidGuess()
    if len(guess) > MAX_GUESS_LENGTH:
        raise InvalidGuess('Guess is too long')

    def _apply():
        session = _lock_session(puzzle.id, player_id)
        if session is None:
            session = _create_session(puzzle, player_id, now)
        if session.is_terminal:
            raise AlreadyCompleted(session)
        max_attempts = session.max_attempts(base_attempts())
        if session.total_attempts >= max_attempts:
            _close_exhausted(puzzle, session, now)
            return None

        previous = session.total_attempts
        if not _claim_attempt(session.id, previous):
            _raise_for_lost_claim(session)
            _close_exhausted(puzzle, session, now)
            return None
        attempt_number = previous + 1

        correct = is_correct_guess(guess, puzzle.hidden_word)
        db.session.add(Attempt(
            session_id=session.id,
            guess_text=guess,
            is_correct=correct,
            attempt_number=attempt_number,
            created_at=now,
        ))

        can_invite = False
        if correct:
            session.status = WON
            session.points_earned = points_for_win(attempt_number)
            session.completed_at = now
            _bump_counters(puzzle.id, successful_guesses=1, total_attempts=attempt_number)
        elif attempt_number >= max_attempts:
            session.status = LOST
            session.points_earned = 0
            session.completed_at = now
            _bump_counters(puzzle.id, failed_guesses=1, total_attempts=attempt_number)
        else:
            can_invite = (max_attempts - attempt_number == 1) and not session.has_used_invite

        return GuessResult(
            is_correct=correct,
            attempt_number=attempt_number,
            points_earned=session.points_earned,
            session_status=session.status,
            max_attempts=max_attempts,
            can_invite=can_invite,
            attempts_remaining=max(0, max_attempts - attempt_number),
        )

    result = _run_atomically('guess', _apply)
    if result is None:
        raise OutOfAttempts()
    current_app.logger.info(
        f"[guess] puzzle={puzzle.code} player={player_id} attempt={result.attempt_number}/{result.max_attempts} "
        f"correct={result.is_correct} status={result.session_status} points={result.points_earned}"
    )
    return result


def grant_invite_bonus(puzzle_id: int, inviter_id: int, invited_handle: str, now=None):
    """Create the inviter's single invite for this puzzle and raise their attempt ceiling.

    The bonus applies immediately, whether or not the friend ever plays.
    Returns ``(invite, session)``.
    """
    now = now or utcnow()
    puzzle = _load_active_puzzle(puzzle_id, now)
    if puzzle.author_id == inviter_id:
        raise IsAuthor('You cannot ask for help on your own game')
    handle = normalize_handle(invited_handle)
    inviter = db.session.get(User, inviter_id)
    if inviter is not None and inviter.username and inviter.username.lower() == handle:
        raise InvalidHandle('You cannot invite yourself')

    def _apply():
        if Invite.query.filter_by(puzzle_id=puzzle.id, inviter_id=inviter_id).first():
            raise AlreadyInvited()
        session = _lock_session(puzzle.id, inviter_id)
        if session is not None and session.is_terminal:
            raise AlreadyCompleted(session)

        invite = Invite(
            puzzle_id=puzzle.id,
            inviter_id=inviter_id,
            invited_handle=handle,
            status=INVITE_PENDING,
            inviter_earned_points=0,
            created_at=now,
        )
        db.session.add(invite)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise AlreadyInvited() from exc

        bonus = invite_bonus_attempts()
        if session is None:
            session = _create_session(
                puzzle, inviter_id, now,
                bonus_attempts=bonus, has_used_invite=True, invite_id=invite.id,
            )
        else:
            session.bonus_attempts = bonus
            session.has_used_invite = True
            session.invite_id = invite.id
        return invite, session

    invite, session = _run_atomically('invite', _apply)
    current_app.logger.info(
        f"[invite] puzzle={puzzle.code} inviter={inviter_id} handle={handle} "
        f"max_attempts={session.max_attempts(base_attempts())}"
    )
    return invite, session


def attempt_count(session: GameSession) -> int:
    """Attempts actually logged for a session; matches ``total_attempts`` when consistent."""
    return db.session.query(func.count(Attempt.id)).filter(Attempt.session_id == session.id).scalar() or 0
