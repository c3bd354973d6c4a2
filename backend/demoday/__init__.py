from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Import models so they register with SQLAlchemy metadata
    from demoday import models  # noqa: F401

    # One coordinator (and its owned state) per app
    from demoday.broadcaster import TOPICS, SocketIOObserver
    from demoday.services.coordinator import EXTENSION_KEY, EventCoordinator
    coordinator = EventCoordinator.from_config(flask_app.config)
    bridge = SocketIOObserver(socketio, namespace='/ws')
    for topic in TOPICS:
        coordinator.broadcaster.subscribe(topic, bridge)
    flask_app.extensions[EXTENSION_KEY] = coordinator

    # Import and register blueprints here
    from demoday.main import main
    flask_app.register_blueprint(main)

    from demoday.api.presentations import presentations
    from demoday.api.timer import timer
    from demoday.api.voting import voting
    from demoday.api.leaderboard import leaderboard
    flask_app.register_blueprint(presentations, url_prefix='/api/presentations')
    flask_app.register_blueprint(timer, url_prefix='/api/timer')
    flask_app.register_blueprint(voting, url_prefix='/api/votes')
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')

    from demoday.errors import CoordinationError

    @flask_app.errorhandler(CoordinationError)
    def handle_coordination_error(exc):
        if exc.status_code >= 500:
            flask_app.logger.error(f"[error] {exc.code}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    # Register Socket.IO event handlers
    from demoday.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from demoday.models import Team, User
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed teams, each with two members, plus one unaffiliated judge
            for name in ['Team Aurora', 'Team Borealis', 'Team Cirrus', 'Team Dune']:
                team = Team(name=name)
                db.session.add(team)
                db.session.flush()
                slug = name.split()[-1].lower()
                for i in (1, 2):
                    db.session.add(User(username=f'{slug}{i}', team_id=team.id))
            db.session.add(User(username='judge'))
            db.session.commit()

            coordinator.init()
            coordinator.reset()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
