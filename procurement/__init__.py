from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import os
from procurement.logger import get_logger

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["2000 per day", "300 per hour"],
    storage_uri="memory://"  # Use Redis in production for distributed systems
)


def _env_flag(name, default):
    return os.environ.get(name, default).lower() in ('true', '1', 'yes', 'on')


def create_app(config_overrides=None):
    from pathlib import Path

    app = Flask(__name__)

    logger = get_logger("procurement")
    logger.info("Initializing Flask application")

    config_overrides = config_overrides or {}

    # Configuration
    # SECURITY: Require SECRET_KEY in environment - no fallback
    app.config['SECRET_KEY'] = config_overrides.get('SECRET_KEY') or os.environ.get('SECRET_KEY')
    if not app.config['SECRET_KEY']:
        logger.critical("SECRET_KEY not set in environment! Application cannot start.")
        raise RuntimeError("SECRET_KEY environment variable is required")

    # Prefer an explicit DATABASE_URL; otherwise keep the SQLite file inside instance/
    db_env = os.environ.get('DATABASE_URL')
    if db_env:
        app.config['SQLALCHEMY_DATABASE_URI'] = db_env
    else:
        base_dir = Path(__file__).parent.parent
        instance_dir = base_dir / 'instance'
        instance_dir.mkdir(parents=True, exist_ok=True)
        default_db_path = instance_dir / 'procurement.db'
        app.config['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{str(default_db_path.resolve())}"

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Session cookie security configuration
    # Default to True (secure) - only set to False for development (HTTP)
    app.config['SESSION_COOKIE_SECURE'] = _env_flag('SESSION_COOKIE_SECURE', 'True')
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['PERMANENT_SESSION_LIFETIME'] = int(os.environ.get('PERMANENT_SESSION_LIFETIME', '3600'))

    # Workflow configuration
    app.config['LOW_STOCK_THRESHOLD'] = int(os.environ.get('LOW_STOCK_THRESHOLD', '20'))
    app.config['AUTO_CREATE_INVENTORY_ON_DELIVERY'] = _env_flag('AUTO_CREATE_INVENTORY_ON_DELIVERY', 'False')
    app.config['GRN_LOG_LIMIT'] = int(os.environ.get('GRN_LOG_LIMIT', '500'))

    app.config['RATELIMIT_ENABLED'] = _env_flag('RATELIMIT_ENABLED', 'True')

    app.config.update(config_overrides)

    if app.config['AUTO_CREATE_INVENTORY_ON_DELIVERY']:
        logger.info("Inventory items will be created automatically on final delivery")

    logger.debug(f"Database configured: {app.config['SQLALCHEMY_DATABASE_URI'].split(':', 1)[0]}")

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'UnauthorizedError', 'message': 'Authentication required'}), 401

    logger.debug("Extensions initialized")

    # Import models to ensure they're registered with SQLAlchemy
    from procurement.data import register_models
    register_models()

    logger.debug("Models imported and registered")

    # Register blueprints
    from procurement.auth import auth
    from procurement.presentation.routes import init_app as init_routes
    from procurement.presentation.errors import register_error_handlers

    csrf.exempt(auth)
    app.register_blueprint(auth)
    init_routes(app)
    register_error_handlers(app)

    # Add security headers to all responses
    @app.after_request
    def set_security_headers(response):
        """Add security headers to all responses"""
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Cache-Control'] = 'no-store'
        return response

    logger.info("Flask application initialization complete")

    return app
