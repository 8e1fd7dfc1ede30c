from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "https://flappy-bird-game.vercel.app",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from flappy.errors import register_error_handlers
    register_error_handlers(flask_app)

    from flappy.main import main
    flask_app.register_blueprint(main)

    from flappy.api.auth import auth
    flask_app.register_blueprint(auth, url_prefix='/api/auth')

    from flappy.api.scores import scores
    flask_app.register_blueprint(scores, url_prefix='/api/scores')

    from flappy.api.payment import payment
    flask_app.register_blueprint(payment, url_prefix='/api/payment')

    from flappy.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Bearer tokens only; no cookie sessions
    from flappy.services.accounts import load_user_from_request
    from flappy.errors import AuthError

    @login_manager.request_loader
    def load_user(request):
        return load_user_from_request(request)

    @login_manager.unauthorized_handler
    def unauthorized():
        raise AuthError('No authentication token provided')

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from flappy.services.accounts import register_user
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            for i, name in enumerate(['Test One', 'Test Two', 'Test Three'], start=1):
                register_user(name=name, mobile=f'0171234567{i}', password='password')

            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
