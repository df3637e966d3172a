import os
import sys
import pytest

# Ensure the backend root (containing the `writecast` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from writecast import create_app, db, socketio
from writecast.config import Config


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    APP_URL = 'https://writecast.test'
    BASE_ATTEMPTS = 3
    INVITE_BONUS_ATTEMPTS = 1
    BASE_POINTS = 10
    FIRST_TRY_MULTIPLIER = 2
    AUTHOR_POINTS_PER_FAILURE = 5
    INVITE_REWARD_POINTS = 2
    PUZZLE_LIFETIME_HOURS = 24


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import writecast.models  # noqa: F401
        db.create_all()
    # Requests push their own app context, so g and db.session never leak between them
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


def farcaster_headers(fid, username=None):
    headers = {'X-Farcaster-Fid': str(fid)}
    if username:
        headers['X-Farcaster-Username'] = username
    return headers


@pytest.fixture()
def make_user(app_ctx):
    from writecast.identity import resolve_farcaster_user

    def _make(fid, username=None):
        return resolve_farcaster_user(fid, username=username)
    return _make


@pytest.fixture()
def make_puzzle(app_ctx, make_user):
    from writecast.services.puzzles.authoring import create_puzzle

    def _make(hidden_word='innovation', text=None, mode='fill-blank', author=None, now=None):
        author = author or make_user(9000, 'author')
        text = text or f'The future lies in {hidden_word} and creativity.'
        return create_puzzle(author.id, mode, text, hidden_word, now=now)
    return _make
