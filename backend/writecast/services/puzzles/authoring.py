import random
import string

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from writecast import db
from writecast.errors import InvalidPuzzle, PersistenceFailure
from writecast.models import (
    FILL_BLANK,
    GameSession,
    IN_PROGRESS,
    PUZZLE_MODES,
    Puzzle,
    utcnow,
)
from .matching import contains_word, normalize_guess


def generate_puzzle_code(length=None):
    """Generate a unique, short puzzle code."""
    length = length or int(current_app.config.get('PUZZLE_CODE_LENGTH', 6))
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Puzzle.query.filter_by(code=code).first():
            return code


def validate_puzzle(mode, body_text, hidden_word):
    cfg = current_app.config
    if mode not in PUZZLE_MODES:
        raise InvalidPuzzle(f"Unknown mode '{mode}', expected one of: {', '.join(PUZZLE_MODES)}")
    body_text = (body_text or '').strip()
    hidden_word = normalize_guess(hidden_word)
    if not body_text:
        raise InvalidPuzzle('Write your masterpiece first')
    if not hidden_word:
        raise InvalidPuzzle('A hidden word is required' if mode == FILL_BLANK else 'A framing keyword is required')
    if ' ' in hidden_word:
        raise InvalidPuzzle('The hidden word must be a single word')
    if len(hidden_word) > int(cfg.get('MAX_WORD_LENGTH', 40)):
        raise InvalidPuzzle('The hidden word is too long')
    if len(body_text) > int(cfg.get('MAX_TEXT_LENGTH', 2000)):
        raise InvalidPuzzle('Your text is too long')
    if mode == FILL_BLANK and not contains_word(body_text, hidden_word):
        raise InvalidPuzzle(f'Your text must include the hidden word: "{hidden_word}" (case-sensitive)')
    return body_text, hidden_word


def create_puzzle(author_id, mode, body_text, hidden_word, now=None):
    body_text, hidden_word = validate_puzzle(mode, body_text, hidden_word)
    puzzle = Puzzle(
        code=generate_puzzle_code(),
        mode=mode,
        body_text=body_text,
        hidden_word=hidden_word,
        author_id=author_id,
        created_at=now or utcnow(),
        lifetime_hours=int(current_app.config.get('PUZZLE_LIFETIME_HOURS', 24)),
    )
    try:
        db.session.add(puzzle)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[create] author={author_id} failed to persist puzzle")
        raise PersistenceFailure() from exc
    current_app.logger.info(f"[create] puzzle={puzzle.code} author={author_id} mode={mode}")
    return puzzle


def list_available_puzzles(player_id, now=None):
    """Unexpired puzzles the player neither wrote nor finished, newest first."""
    now = now or utcnow()
    finished = select(GameSession.puzzle_id).where(
        GameSession.player_id == player_id, GameSession.status != IN_PROGRESS
    )
    return (
        Puzzle.query
        .filter(Puzzle.expires_at > now, Puzzle.author_id != player_id, ~Puzzle.id.in_(finished))
        .order_by(Puzzle.created_at.desc(), Puzzle.id.desc())
        .all()
    )
