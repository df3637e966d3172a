"""Invite follow-up: acceptance by the invited friend and reward crediting.

Runs after a guess has been committed and is not part of the engine's
synchronous path. The bonus attempt itself is granted by
``engine.grant_invite_bonus``.
"""
import re

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from writecast import db
from writecast.errors import InvalidHandle, InviteNotFound, PersistenceFailure
from writecast.models import (
    INVITE_ACCEPTED,
    INVITE_COMPLETED,
    INVITE_PENDING,
    Invite,
    utcnow,
)

_HANDLE = re.compile(r'^[a-z0-9][a-z0-9_.-]{0,63}$')


def normalize_handle(handle: str) -> str:
    """``@Friend`` -> ``friend``. Raises InvalidHandle for anything that is not a username."""
    value = (handle or '').strip()
    if value.startswith('@'):
        value = value[1:]
    value = value.lower()
    if not _HANDLE.match(value):
        raise InvalidHandle()
    return value


def accept_invite(invite_id: int, player) -> Invite:
    invite = db.session.get(Invite, invite_id)
    if invite is None:
        raise InviteNotFound()
    if not player.username or player.username.lower() != invite.invited_handle:
        raise InviteNotFound('This invite was sent to someone else')
    if invite.status != INVITE_PENDING:
        return invite
    invite.status = INVITE_ACCEPTED
    invite.invited_player_id = player.id
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[invite-accept] invite={invite_id} storage failure")
        raise PersistenceFailure() from exc
    current_app.logger.info(f"[invite-accept] invite={invite_id} player={player.id}")
    return invite


def credit_invites_for_win(puzzle_id: int, winner) -> list:
    """Complete open invites addressed to ``winner`` on this puzzle and reward the inviters."""
    if not winner.username:
        return []
    reward = int(current_app.config.get('INVITE_REWARD_POINTS', 2))
    invites = (
        Invite.query
        .filter(
            Invite.puzzle_id == puzzle_id,
            Invite.invited_handle == winner.username.lower(),
            Invite.inviter_id != winner.id,
            Invite.status != INVITE_COMPLETED,
        )
        .all()
    )
    if not invites:
        return []
    now = utcnow()
    for invite in invites:
        invite.status = INVITE_COMPLETED
        invite.invited_player_id = winner.id
        invite.inviter_earned_points = reward
        invite.completed_at = now
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[invite-credit] puzzle={puzzle_id} storage failure")
        raise PersistenceFailure() from exc
    for invite in invites:
        current_app.logger.info(
            f"[invite-credit] invite={invite.id} inviter={invite.inviter_id} winner={winner.id} points={reward}"
        )
    return invites
