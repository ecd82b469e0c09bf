"""
app.py - Flask entry point for the PalmTrack plantation application.

Initializes the Flask app, binds the record store, registers all route
blueprints and CLI commands, calls init_db() on startup, and injects
i18n strings into template context.

Run: python app.py (serves on localhost:5000)
"""

import os
import json
import logging
from datetime import date

import click
from flask import Flask
from flask_wtf.csrf import CSRFProtect

from database import Store, get_db_path, get_store, init_db
from records import refresh_overdue_maintenances
from routes.main import main_bp
from routes.gardens import gardens_bp
from routes.records import records_bp
from routes.export import export_bp
from routes.settings import settings_bp
from utils.formatting import register_filters


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    base_dir = os.path.dirname(os.path.abspath(__file__))

    app.config.from_mapping(
        SECRET_KEY=os.environ.get('PALMTRACK_SECRET_KEY', 'palmtrack-local-app-secret-key'),
        DATABASE=get_db_path(),
        BACKUP_DIR=os.environ.get('PALMTRACK_BACKUP_DIR', os.path.join(base_dir, 'backups')),
        TODO_FETCH_WORKERS=4,
        LOG_LEVEL=os.environ.get('PALMTRACK_LOG_LEVEL', 'INFO'),
        WTF_CSRF_CHECK_DEFAULT=True,
        TEMPLATES_AUTO_RELOAD=True,
    )

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    CSRFProtect(app)

    # Ensure backup directory exists
    os.makedirs(app.config['BACKUP_DIR'], exist_ok=True)

    store = Store(app.config['DATABASE'])
    app.extensions['palmtrack_store'] = store
    init_db(store)

    # Register blueprints
    app.register_blueprint(main_bp)
    app.register_blueprint(gardens_bp)
    app.register_blueprint(records_bp)
    app.register_blueprint(export_bp)
    app.register_blueprint(settings_bp)

    register_filters(app)

    # Load i18n strings
    i18n_path = os.path.join(base_dir, 'i18n', 'id.json')
    with open(i18n_path, 'r', encoding='utf-8') as f:
        i18n = json.load(f)

    @app.context_processor
    def inject_i18n():
        """Inject Indonesian UI strings into all templates."""
        return {'i18n': i18n}

    @app.cli.command('init-db')
    def init_db_command():
        """Create the database tables."""
        init_db(get_store())
        click.echo(f"Database ready: {app.config['DATABASE']}")

    @app.cli.command('refresh-overdue')
    @click.option('--today', type=click.DateTime(formats=['%Y-%m-%d']), default=None,
                  help='Reference date (defaults to today).')
    def refresh_overdue_command(today):
        """Mark scheduled maintenances in the past as Terlambat."""
        reference = today.date() if today else date.today()
        count, error = refresh_overdue_maintenances(get_store(), reference)
        if error:
            raise click.ClickException(error)
        click.echo(f"{count} perawatan ditandai Terlambat.")

    return app


if __name__ == '__main__':
    app = create_app()
    # Debug mode: enabled by default for development (auto-reload on file changes)
    # Set FLASK_DEBUG=0 to disable for production
    debug = os.environ.get('FLASK_DEBUG', '1') != '0'
    app.run(host='localhost', port=5000, debug=debug)
