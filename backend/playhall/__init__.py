from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:8080",
    "http://127.0.0.1:8080",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from playhall.main import main
    flask_app.register_blueprint(main)

    from playhall.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    @flask_app.errorhandler(404)
    def not_found(exc):
        return jsonify({'error': getattr(exc, 'description', None) or 'Not found'}), 404

    # Register Socket.IO event handlers
    from playhall.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database."""
        import playhall.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('sessions-prune')
    @click.option('--ttl', type=int, default=None, help='Idle seconds before a session is removed.')
    def sessions_prune_command(ttl):
        """Removes game sessions nobody has touched recently."""
        from playhall.services.games.sessions import prune_idle_sessions
        ttl = ttl if ttl is not None else int(flask_app.config.get('SESSION_IDLE_TTL_SEC', 3600))
        with flask_app.app_context():
            removed = prune_idle_sessions(ttl)
            print(f'Removed {removed} idle session(s).')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(sessions_prune_command)

    return flask_app
