import logging

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from writecast.config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Import and register blueprints here
    from writecast.main import main
    flask_app.register_blueprint(main)

    from writecast.api.puzzles import puzzles
    from writecast.api.players import players
    from writecast.api.waitlist import waitlist
    flask_app.register_blueprint(puzzles, url_prefix='/api/puzzles')
    flask_app.register_blueprint(players, url_prefix='/api')
    flask_app.register_blueprint(waitlist, url_prefix='/api/waitlist')

    from writecast.errors import WritecastError

    @flask_app.errorhandler(WritecastError)
    def handle_writecast_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    from writecast.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Identity resolution (Farcaster fid header or anonymous fallback)
    from writecast.identity import load_user_from_request, unauthorized

    login_manager.request_loader(load_user_from_request)
    login_manager.unauthorized_handler(unauthorized)

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with demo puzzles."""
        from writecast.seed import seed_demo_data
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            codes = seed_demo_data()
            click.echo(f'Database has been reset and seeded with {len(codes)} puzzles!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
