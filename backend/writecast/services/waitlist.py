"""Launch waitlist: people who asked to be notified, by email or Farcaster username."""
import re

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from writecast import db
from writecast.errors import AlreadyOnWaitlist, InvalidContact, PersistenceFailure
from writecast.models import WaitlistEntry
from writecast.services.puzzles.invites import normalize_handle

_EMAIL = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
MAX_EMAIL_LENGTH = 254


def parse_contact(raw):
    """``@name`` or a bare name is a username, anything else with an ``@`` is an email.

    Returns ``(email, farcaster_username)``.
    """
    value = (raw or '').strip()
    if not value:
        raise InvalidContact()
    if '@' in value and not value.startswith('@'):
        return value, None
    return None, value


def join_waitlist(email=None, farcaster_username=None) -> WaitlistEntry:
    email = (email or '').strip().lower() or None
    if not email and not (farcaster_username or '').strip():
        raise InvalidContact()
    if email and (len(email) > MAX_EMAIL_LENGTH or not _EMAIL.match(email)):
        raise InvalidContact('Please provide a valid email address')
    username = normalize_handle(farcaster_username) if farcaster_username else None

    if email:
        existing = WaitlistEntry.query.filter_by(email=email).first()
    else:
        existing = WaitlistEntry.query.filter_by(farcaster_username=username).first()
    if existing:
        raise AlreadyOnWaitlist()

    entry = WaitlistEntry(email=email, farcaster_username=username)
    db.session.add(entry)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise AlreadyOnWaitlist() from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("[waitlist] storage failure")
        raise PersistenceFailure() from exc
    current_app.logger.info(f"[waitlist] joined id={entry.id} by={'email' if email else 'username'}")
    return entry


def waitlist_count() -> int:
    return db.session.query(func.count(WaitlistEntry.id)).scalar() or 0
