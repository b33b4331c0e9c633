from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from sqlalchemy.exc import SQLAlchemyError
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from groupeval.main import main
    flask_app.register_blueprint(main)

    from groupeval.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api')

    from groupeval.services.sessions.errors import SessionError, InternalError

    @flask_app.errorhandler(SessionError)
    def handle_session_error(exc):
        if isinstance(exc, InternalError):
            # Operators get the full chain; clients get a generic message
            flask_app.logger.error(f"[internal] {exc.message}", exc_info=exc)
            return jsonify({'error': 'Internal server error', 'kind': exc.kind}), 500
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(SQLAlchemyError)
    def handle_storage_error(exc):
        db.session.rollback()
        flask_app.logger.exception(f"[internal] storage failure: {exc}")
        return jsonify({'error': 'Internal server error', 'kind': InternalError.kind}), 500

    from groupeval.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        import groupeval.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
