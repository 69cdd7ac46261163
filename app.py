import os
import logging
import click
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify
from flask_wtf.csrf import CSRFError
from config import config
from extensions import db, migrate, login_manager, csrf, limiter
from utils.results import failure, unauthenticated, to_response, VALIDATION_ERROR, NOT_FOUND, INTERNAL_ERROR


def configure_logging(app):
    """Configure application logging"""
    if not app.debug and not app.testing:
        # Create logs directory if it doesn't exist
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = RotatingFileHandler(
            'logs/spendmeter.log',
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('SpendMeter startup')
    else:
        # Development logging to console
        app.logger.setLevel(logging.DEBUG)
        app.logger.info('SpendMeter startup (DEBUG mode)')


def create_app(config_name=None):
    """Application factory pattern"""

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # Configure logging
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # Add security headers
    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        headers = app.config.get('SECURITY_HEADERS', {})
        for header, value in headers.items():
            response.headers[header] = value
        return response

    # User loader callback for Flask-Login
    @login_manager.user_loader
    def load_user(user_id):
        from models.users import User
        return db.session.get(User, int(user_id))

    # JSON clients get a 401 envelope instead of a login redirect
    @login_manager.unauthorized_handler
    def unauthorized():
        return to_response(unauthenticated())

    # Import models to ensure they're registered with SQLAlchemy
    with app.app_context():
        import models

    # Register blueprints
    from blueprints.auth import auth_bp
    from blueprints.months import months_bp
    from blueprints.recurring import recurring_bp
    from blueprints.transactions import transactions_bp
    from blueprints.insights import insights_bp
    from blueprints.settings import settings_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(months_bp)
    app.register_blueprint(recurring_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(insights_bp)
    app.register_blueprint(settings_bp)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_commands(app)

    return app


def register_error_handlers(app):
    """Register global error handlers"""

    @app.errorhandler(400)
    def bad_request_error(error):
        return to_response(failure(VALIDATION_ERROR, 'Bad request'))

    @app.errorhandler(401)
    def unauthorized_error(error):
        return to_response(unauthenticated())

    @app.errorhandler(404)
    def not_found_error(error):
        return to_response(failure(NOT_FOUND, 'Not found'))

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify(failure(VALIDATION_ERROR, 'Method not allowed')), 405

    @app.errorhandler(429)
    def rate_limited_error(error):
        return jsonify(failure(VALIDATION_ERROR, 'Too many requests', details=str(error.description))), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f'Internal Server Error: {error}')
        return to_response(failure(INTERNAL_ERROR, 'Internal server error'))

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        return to_response(failure(VALIDATION_ERROR, 'CSRF token validation failed', details=error.description))


def register_commands(app):
    """Register Flask CLI commands."""

    def _find_user(email):
        from models.users import User
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
        return user

    def _echo_failure(result):
        error = result['error']
        click.echo(f"ERROR: {error['code']}: {error['message']}", err=True)

    @app.cli.group()
    def months():
        """Inspect and roll over budgeting months."""
        pass

    @months.command('status')
    @click.argument('email')
    def month_status(email):
        """Show the active month for a user by EMAIL and whether it is stale."""
        from services.period_service import PeriodService
        user = _find_user(email)
        if not user:
            return
        result = PeriodService.is_rollover_needed(user.id)
        if not result['ok']:
            _echo_failure(result)
            return
        data = result['data']
        active = data['current_active_label'] or '(none)'
        click.echo(f'Active month: {active}')
        click.echo(f'Current month: {data["suggested_label"]}')
        click.echo('Rollover needed' if data['needed'] else 'Up to date')

    @months.command('rollover')
    @click.argument('email')
    @click.option('--limit', 'spending_limit', default=None, help='Spending limit for the new month.')
    @click.option('--label', default=None, help='Label for the new month (defaults to the current month).')
    def month_rollover(email, spending_limit, label):
        """Close the active month for EMAIL and open a new one."""
        from services.period_service import PeriodService
        user = _find_user(email)
        if not user:
            return
        result = PeriodService.rollover(user.id, label=label, spending_limit=spending_limit)
        if not result['ok']:
            _echo_failure(result)
            return
        new_month = result['data']['new_month']
        click.echo(f'SUCCESS: opened "{new_month["label"]}" with limit {new_month["spending_limit"]}')

    @app.cli.group()
    def recurring():
        """Post recurring expenses."""
        pass

    @recurring.command('apply')
    @click.argument('email')
    def recurring_apply(email):
        """Post recurring expenses that are due in the active month for EMAIL."""
        from services.period_service import PeriodService
        from services.recurring_service import RecurringService
        user = _find_user(email)
        if not user:
            return
        active = PeriodService.get_active_month(user.id)
        if not active['ok']:
            _echo_failure(active)
            return
        result = RecurringService.ensure_applied(user.id, active['data']['id'])
        if not result['ok']:
            _echo_failure(result)
            return
        click.echo(f'Posted {result["data"]["created_count"]} recurring expense(s) '
                   f'into "{active["data"]["label"]}"')


if __name__ == '__main__':
    app = create_app()
    # SECURITY: Only bind to localhost in development
    # Never use 0.0.0.0 with debug mode - it exposes the debugger to the network
    app.run(host='127.0.0.1', port=5000, debug=True)
