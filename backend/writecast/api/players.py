from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from writecast.errors import PlayerNotFound
from writecast.models import User
from writecast.services.puzzles import invites, scoring

players = Blueprint('players', __name__)


def _limit_arg(default=10, maximum=50):
    try:
        limit = int(request.args.get('limit', default))
    except (TypeError, ValueError):
        limit = default
    return max(1, min(limit, maximum))


@players.route('/me', methods=['GET'])
@login_required
def whoami():
    return jsonify(current_user.to_dict())


@players.route('/leaderboard', methods=['GET'])
def leaderboard():
    limit = _limit_arg()
    return jsonify({
        'players': scoring.player_leaderboard(limit),
        'authors': scoring.author_leaderboard(limit),
    })


@players.route('/players/<string:username>', methods=['GET'])
def player_profile(username):
    user = User.query.filter_by(username=username.lstrip('@').lower()).first()
    if not user:
        raise PlayerNotFound(f'Player not found: {username}')
    return jsonify(scoring.player_stats(user))


@players.route('/invites/<int:invite_id>/accept', methods=['POST'])
@login_required
def accept_invite(invite_id):
    invite = invites.accept_invite(invite_id, current_user)
    return jsonify(invite.to_dict())
