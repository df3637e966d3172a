from flask import current_app
from sqlalchemy import func

from writecast import db
from writecast.models import (
    GameSession,
    INVITE_COMPLETED,
    Invite,
    Puzzle,
    TERMINAL_STATUSES,
    User,
    WON,
)


def points_for_win(attempt_number: int) -> int:
    """Points for a correct guess; solving on the first attempt multiplies the base."""
    cfg = current_app.config
    base = int(cfg.get('BASE_POINTS', 10))
    if attempt_number == 1:
        return base * int(cfg.get('FIRST_TRY_MULTIPLIER', 2))
    return base


def author_earnings(puzzle: Puzzle) -> int:
    """Author points are derived from the failure counter on every read, never stored."""
    per_failure = int(current_app.config.get('AUTHOR_POINTS_PER_FAILURE', 5))
    return (puzzle.failed_guesses or 0) * per_failure


def success_rate(puzzle: Puzzle) -> float:
    if not puzzle.total_players:
        return 0.0
    return round(puzzle.successful_guesses / puzzle.total_players * 100, 1)


def _invite_rewards(user_ids=None) -> dict:
    query = (
        db.session.query(Invite.inviter_id, func.sum(Invite.inviter_earned_points))
        .filter(Invite.status == INVITE_COMPLETED)
    )
    if user_ids is not None:
        query = query.filter(Invite.inviter_id.in_(user_ids))
    return {inviter_id: int(points or 0) for inviter_id, points in query.group_by(Invite.inviter_id).all()}


def _ranked(entries, key):
    entries.sort(key=lambda e: (-e[key], e['user_id']))
    for idx, entry in enumerate(entries):
        entry['rank'] = idx + 1
    return entries


def _user_fields(user):
    return {
        'user_id': user.id,
        'username': user.username,
        'display_name': user.display_name,
    }


def player_leaderboard(limit: int = 10) -> list:
    """Players ranked by points from finished sessions plus invite rewards."""
    rows = (
        db.session.query(GameSession.player_id, func.sum(GameSession.points_earned), func.count(GameSession.id))
        .filter(GameSession.status.in_(TERMINAL_STATUSES))
        .group_by(GameSession.player_id)
        .all()
    )
    if not rows:
        return []
    player_ids = [r[0] for r in rows]
    rewards = _invite_rewards(player_ids)
    users = {u.id: u for u in User.query.filter(User.id.in_(player_ids)).all()}
    entries = []
    for player_id, points, games in rows:
        entry = _user_fields(users[player_id])
        entry['total_points_earned'] = int(points or 0) + rewards.get(player_id, 0)
        entry['total_games_played'] = int(games)
        entries.append(entry)
    return _ranked(entries, 'total_points_earned')[:limit]


def author_leaderboard(limit: int = 10) -> list:
    """Authors ranked by derived earnings (points per failed guess across their puzzles)."""
    per_failure = int(current_app.config.get('AUTHOR_POINTS_PER_FAILURE', 5))
    rows = (
        db.session.query(Puzzle.author_id, func.sum(Puzzle.failed_guesses), func.count(Puzzle.id))
        .group_by(Puzzle.author_id)
        .all()
    )
    if not rows:
        return []
    users = {u.id: u for u in User.query.filter(User.id.in_([r[0] for r in rows])).all()}
    entries = []
    for author_id, failed, created in rows:
        entry = _user_fields(users[author_id])
        entry['total_points_as_author'] = int(failed or 0) * per_failure
        entry['total_games_created'] = int(created)
        entries.append(entry)
    return _ranked(entries, 'total_points_as_author')[:limit]


def player_stats(user: User) -> dict:
    per_failure = int(current_app.config.get('AUTHOR_POINTS_PER_FAILURE', 5))
    played = (
        db.session.query(func.coalesce(func.sum(GameSession.points_earned), 0), func.count(GameSession.id))
        .filter(GameSession.player_id == user.id, GameSession.status.in_(TERMINAL_STATUSES))
        .one()
    )
    wins = GameSession.query.filter_by(player_id=user.id, status=WON).count()
    authored = (
        db.session.query(func.coalesce(func.sum(Puzzle.failed_guesses), 0), func.count(Puzzle.id))
        .filter(Puzzle.author_id == user.id)
        .one()
    )
    stats = _user_fields(user)
    stats.update({
        'total_points_earned': int(played[0]) + _invite_rewards([user.id]).get(user.id, 0),
        'total_games_played': int(played[1]),
        'total_games_won': wins,
        'total_points_as_author': int(authored[0]) * per_failure,
        'total_games_created': int(authored[1]),
    })
    return stats
