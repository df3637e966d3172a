from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user, login_required

from writecast.errors import PersistenceFailure
from writecast.identity import farcaster_required, find_request_user
from writecast.models import IN_PROGRESS, utcnow
from writecast.services.puzzles import authoring, engine
from writecast.services.puzzles.invites import credit_invites_for_win
from writecast.services.puzzles.matching import player_view
from writecast.services.puzzles.scoring import author_earnings, success_rate
from writecast.socketio_events import broadcast_stats


puzzles = Blueprint('puzzles', __name__)


def _player_payload(puzzle):
    """Puzzle as players see it; the hidden word never leaves through this view."""
    payload = puzzle.to_dict()
    payload['text'] = player_view(puzzle)
    payload['max_attempts'] = engine.base_attempts()
    return payload


def _app_url() -> str:
    return str(current_app.config.get('APP_URL', '')).rstrip('/')


@puzzles.route('', methods=['POST'])
@farcaster_required
def create_puzzle():
    data = request.get_json(silent=True) or {}
    puzzle = authoring.create_puzzle(
        author_id=current_user.id,
        mode=data.get('mode'),
        body_text=data.get('text'),
        hidden_word=data.get('hidden_word'),
    )
    payload = _player_payload(puzzle)
    payload['message'] = 'Game published!'
    payload['share_url'] = f"{_app_url()}/play/{puzzle.code}"
    return jsonify(payload), 201


@puzzles.route('', methods=['GET'])
@login_required
def list_puzzles():
    available = authoring.list_available_puzzles(current_user.id)
    return jsonify({'puzzles': [_player_payload(p) for p in available], 'total': len(available)})


@puzzles.route('/<string:code>', methods=['GET'])
def get_puzzle(code):
    puzzle = engine.get_puzzle_by_code(code)
    return jsonify(_player_payload(puzzle))


@puzzles.route('/<string:code>/session', methods=['GET'])
@login_required
def get_session(code):
    puzzle = engine.get_puzzle_by_code(code, include_expired=True)
    session = engine.start_or_resume_session(puzzle.id, current_user.id)
    base = engine.base_attempts()
    return jsonify({
        'code': puzzle.code,
        'session': session.to_dict(base_attempts=base) if session else None,
        'attempts': [a.to_dict() for a in engine.list_attempts(session)],
        'max_attempts': session.max_attempts(base) if session else base,
        'attempts_remaining': (session.max_attempts(base) - session.total_attempts) if session else base,
    })


@puzzles.route('/<string:code>/guess', methods=['POST'])
@login_required
def submit_guess(code):
    data = request.get_json(silent=True) or {}
    puzzle = engine.get_puzzle_by_code(code)
    result = engine.submit_guess(puzzle.id, current_user.id, data.get('guess'))
    payload = result.to_dict()
    payload['code'] = puzzle.code
    if result.session_status != IN_PROGRESS:
        payload['answer'] = puzzle.hidden_word
    if result.is_correct:
        try:
            credit_invites_for_win(puzzle.id, current_user)
        except PersistenceFailure:
            # the guess itself is committed; crediting can be replayed later
            current_app.logger.warning(f"[invite-credit] puzzle={puzzle.code} winner={current_user.id} deferred", exc_info=True)
    broadcast_stats(puzzle)
    return jsonify(payload)


@puzzles.route('/<string:code>/invite', methods=['POST'])
@farcaster_required
def invite_friend(code):
    data = request.get_json(silent=True) or {}
    puzzle = engine.get_puzzle_by_code(code)
    invite, session = engine.grant_invite_bonus(puzzle.id, current_user.id, data.get('handle'))
    base = engine.base_attempts()
    max_attempts = session.max_attempts(base)
    broadcast_stats(puzzle)
    return jsonify({
        'code': puzzle.code,
        'invite': invite.to_dict(),
        'session': session.to_dict(base_attempts=base),
        'invite_url': f"{_app_url()}/play/{puzzle.code}?invitedBy={current_user.id}&invitee={invite.invited_handle}",
        'message': f'Invite sent! You now have {max_attempts} total attempts.',
    }), 201


@puzzles.route('/<string:code>/reveal', methods=['GET'])
def reveal(code):
    puzzle = engine.reveal_puzzle(code)
    now = utcnow()
    expired = puzzle.is_expired(now)
    payload = puzzle.to_dict(include_answer=expired)
    payload['text'] = player_view(puzzle)
    payload['status'] = 'completed' if expired else 'active'
    payload['remaining_hours'] = 0.0 if expired else round((puzzle.expires_at - now).total_seconds() / 3600, 1)
    payload['success_rate'] = success_rate(puzzle)
    payload['author_earnings'] = author_earnings(puzzle)
    # read-only view: unknown callers are not registered here
    viewer = find_request_user(request)
    session = engine.start_or_resume_session(puzzle.id, viewer.id) if viewer else None
    payload['is_author'] = bool(viewer) and puzzle.author_id == viewer.id
    payload['your_session'] = session.to_dict(base_attempts=engine.base_attempts()) if session else None
    return jsonify(payload)


@puzzles.route('/<string:code>/share', methods=['GET'])
def share(code):
    puzzle = engine.get_puzzle_by_code(code)
    share_url = f"{_app_url()}/play/{puzzle.code}"
    return jsonify({
        'code': puzzle.code,
        'mode': puzzle.mode,
        'text': player_view(puzzle),
        'share_url': share_url,
        'cast_text': f"Can you guess my hidden word? Play game {puzzle.code} on Writecast",
    })
