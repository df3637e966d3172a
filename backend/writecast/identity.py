"""Caller identity for Flask-Login.

A request is resolved to a ``User`` from the Farcaster headers set by the
mini-app client, or from an anonymous token (header or session cookie) so
guests still get a stable player id. Token signatures are not verified here.
"""
import re
import secrets
from functools import wraps

from flask import jsonify, session
from flask_login import current_user
from sqlalchemy.exc import IntegrityError

from writecast import db
from writecast.models import User

FID_HEADER = 'X-Farcaster-Fid'
USERNAME_HEADER = 'X-Farcaster-Username'
DISPLAY_NAME_HEADER = 'X-Farcaster-Display-Name'
ANON_HEADER = 'X-Anonymous-Id'
ANON_SESSION_KEY = 'anon_id'
ANON_TOKEN_RE = re.compile(r'^[A-Za-z0-9_-]{1,64}$')


def get_or_create_user(farcaster_id, username=None, display_name=None, defaults=None):
    """Look up a user, updating only the fields the caller actually sent.

    ``defaults`` fills missing fields on insert and never overwrites a stored user.
    """
    user = User.query.filter_by(farcaster_id=farcaster_id).first()
    if user:
        changed = False
        if username and user.username != username.lower():
            user.username = username.lower()
            changed = True
        if display_name and user.display_name != display_name:
            user.display_name = display_name
            changed = True
        if changed:
            db.session.commit()
        return user
    defaults = defaults or {}
    username = username or defaults.get('username')
    user = User(
        farcaster_id=farcaster_id,
        username=username.lower() if username else None,
        display_name=display_name or defaults.get('display_name'),
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # created by a concurrent request
        db.session.rollback()
        user = User.query.filter_by(farcaster_id=farcaster_id).first()
    return user


def resolve_farcaster_user(fid, username=None, display_name=None):
    fid = str(fid).strip()
    return get_or_create_user(
        fid,
        username=username,
        display_name=display_name,
        defaults={'username': f'user_{fid}', 'display_name': f'User {fid}'},
    )


def _anonymous_token(token=None):
    token = (token or '').strip()
    if ANON_TOKEN_RE.match(token):
        return token
    stored = session.get(ANON_SESSION_KEY)
    if stored and ANON_TOKEN_RE.match(stored):
        return stored
    return None


def resolve_anonymous_user(token=None):
    """Anonymous players are keyed by a client token, or one kept in the session cookie."""
    token = _anonymous_token(token)
    if not token:
        token = secrets.token_hex(8)
        session[ANON_SESSION_KEY] = token
    return get_or_create_user(f'anon_{token}', display_name='Anonymous')


def load_user_from_request(req):
    fid = req.headers.get(FID_HEADER)
    if fid and fid.strip().isdigit():
        return resolve_farcaster_user(
            fid,
            username=req.headers.get(USERNAME_HEADER),
            display_name=req.headers.get(DISPLAY_NAME_HEADER),
        )
    return resolve_anonymous_user(req.headers.get(ANON_HEADER))


def find_request_user(req):
    """The caller's existing user, or None. Never creates a row."""
    fid = req.headers.get(FID_HEADER)
    if fid and fid.strip().isdigit():
        return User.query.filter_by(farcaster_id=fid.strip()).first()
    token = _anonymous_token(req.headers.get(ANON_HEADER))
    if not token:
        return None
    return User.query.filter_by(farcaster_id=f'anon_{token}').first()


def unauthorized():
    return jsonify({'error': 'Sign in with Farcaster to do that', 'code': 'Unauthorized'}), 401


def is_farcaster_user(user) -> bool:
    return bool(user and user.is_authenticated and not user.is_anonymous_player)


def farcaster_required(view):
    """Guests may play; creating puzzles and inviting friends needs a Farcaster identity."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not is_farcaster_user(current_user):
            return unauthorized()
        return view(*args, **kwargs)
    return wrapper
