"""
Main Flask Application
Campus Connect
"""
import logging
import os
import sys

# Ensure the project root is on the Python path when running as a script
PROJECT_ROOT = os.path.dirname(os.path.abspath(os.path.join(__file__, os.pardir)))
if PROJECT_ROOT not in sys.path:
    sys.path.append(PROJECT_ROOT)

from flask import Flask, jsonify
from flask_login import LoginManager
from flask_wtf import CSRFProtect
from werkzeug.exceptions import HTTPException

from campus_connect.config import Config
from campus_connect.controllers import API_BLUEPRINTS
from campus_connect.data_access import init_database
from campus_connect.data_access.user_dal import UserDAL
from campus_connect.utils.errors import CampusConnectError
from campus_connect.utils.validators import ID_PATTERN

LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'


def configure_logging(app):
    """Apply LOG_LEVEL to the app logger and the package loggers."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    app.logger.setLevel(level)
    logging.getLogger('campus_connect').setLevel(level)


def create_app(config_class=Config):
    """
    Application factory pattern for Flask app initialization.

    Creates the Flask application, initializes the database schema and
    wires identity, CSRF protection, the API blueprints and the JSON error
    handlers.

    Args:
        config_class: Configuration object (Config, TestingConfig, ...)

    Returns:
        Flask: Configured application
    """
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)

    # CSRF protection for form routes; the header-authenticated JSON API
    # blueprints are exempted when registered
    csrf = CSRFProtect(app)

    with app.app_context():
        init_database()

    # Setup Flask-Login
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.request_loader
    def load_user_from_request(request):
        """
        Resolve the caller from the identity header set by the upstream
        authentication provider.

        Returns:
            User: User model instance if the header names one, None otherwise
        """
        raw = request.headers.get(app.config['USER_ID_HEADER'], '').strip()
        if not ID_PATTERN.fullmatch(raw):
            return None
        return UserDAL.get_user_by_id(int(raw))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': {
            'code': 'UNAUTHENTICATED',
            'message': 'Authentication required',
            'details': {}
        }}), 401

    # Register blueprints
    for blueprint in API_BLUEPRINTS:
        csrf.exempt(blueprint)
        app.register_blueprint(blueprint)

    @app.errorhandler(CampusConnectError)
    def handle_domain_error(error):
        if error.status_code >= 500:
            app.logger.error('%s: %s', error.code, error.message)
        else:
            app.logger.info('%s (%s): %s', error.code, error.status_code, error.message)
        return jsonify({'error': error.to_dict()}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'error': {
            'code': error.name.upper().replace(' ', '_'),
            'message': error.description,
            'details': {}
        }}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        app.logger.exception('Unhandled error: %s', error)
        return jsonify({'error': {
            'code': 'INTERNAL_ERROR',
            'message': 'An unexpected error occurred',
            'details': {}
        }}), 500

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    return app


if __name__ == '__main__':
    app = create_app()
    debug_env = os.environ.get('FLASK_DEBUG')
    app.run(debug=debug_env == '1', host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
