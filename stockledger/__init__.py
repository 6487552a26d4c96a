"""Flask application factory."""
import logging
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from stockledger.database import init_db


def configure_logging(app):
    """Root logging setup; services log through logging.getLogger(__name__)."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    app.logger.setLevel(level)


def create_app(config_object='config.Config', config_overrides=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app)

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            profiles_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Initialize database
    init_db(app)

    # Prometheus request metrics
    from stockledger.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Caller identity: load user and team context before each request
    from stockledger.middleware import load_user_and_team

    @app.before_request
    def before_request_handler():
        """Load user and team context for each request."""
        load_user_and_team()

    # Error Handlers
    from stockledger.exceptions import StockLedgerError

    @app.errorhandler(StockLedgerError)
    def handle_stockledger_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"StockLedgerError [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"StockLedgerError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from stockledger.blueprints.api import api_bp
    from stockledger.blueprints.metrics import metrics_bp
    app.register_blueprint(api_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from stockledger.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
