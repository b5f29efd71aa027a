"""Flask application factory."""
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from pos_billing.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Flask-Mail for invoice and campaign emails
    from pos_billing.services.email_service import init_mail
    init_mail(app)

    # Redis cache for report aggregates
    from pos_billing.services.cache_service import init_cache
    init_cache(app)

    # Text generation client for insights and events
    from pos_billing.services.text_generation import TextGenerationClient
    app.extensions['text_generation'] = TextGenerationClient.from_config(app.config)

    # Prometheus metrics instrumentation
    from pos_billing.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: trust X-Forwarded-* from the reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Error Handlers
    from pos_billing.exceptions import BillingError

    @app.errorhandler(BillingError)
    def handle_billing_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"BillingError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"BillingError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'message': 'Internal server error'}), 500

    # Register blueprints
    from pos_billing.blueprints.bills import bills_bp
    from pos_billing.blueprints.inventory import inventory_bp
    from pos_billing.blueprints.reports import reports_bp
    from pos_billing.blueprints.marketing import marketing_bp
    from pos_billing.blueprints.metrics import metrics_bp

    app.register_blueprint(bills_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(marketing_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from pos_billing.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"MAIL_SERVER={app.config.get('MAIL_SERVER')}")
    app.logger.info(f"INVOICE_DELIVERY_ASYNC={app.config.get('INVOICE_DELIVERY_ASYNC')}")

    return app
