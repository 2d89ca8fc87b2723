"""Flask application factory."""
import logging
import os

from flask import Flask, jsonify
from config import config

from .extensions import db, migrate, csrf


def create_app(config_name='default'):
    """Create and configure the Flask application.

    Parameters
    ----------
    config_name : str
        Configuration name: 'development', 'production', 'testing'

    Returns
    -------
    Flask
        Configured Flask application instance
    """
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    app.json.sort_keys = app.config.get('JSON_SORT_KEYS', False)

    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.getLogger('weldtrack').setLevel(app.config['LOG_LEVEL'])
    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Ensure folders exist
    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    # Import models for migrations
    from . import models  # noqa: F401

    # Register blueprints
    from .main import main_bp
    from .projects import projects_bp
    from .welds import welds_bp
    from .packages import packages_bp

    for bp in (main_bp, projects_bp, welds_bp, packages_bp):
        app.register_blueprint(bp, url_prefix='/api')
        # JSON API, no browser sessions
        csrf.exempt(bp)

    register_error_handlers(app)

    # Create database tables
    with app.app_context():
        db.create_all()

    return app


def register_error_handlers(app):
    from .services.exceptions import WeldTrackError

    @app.errorhandler(WeldTrackError)
    def weldtrack_error(e):
        db.session.rollback()
        app.logger.warning('%s: %s', type(e).__name__, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(e):
        db.session.rollback()
        return jsonify({'error': 'Internal server error'}), 500
