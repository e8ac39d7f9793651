"""
Централизация отчётности - Application Factory
"""
import logging
import os

import click
from flask import Flask, request, redirect, url_for
from dotenv import load_dotenv

from centralization.api.client import UnauthorizedError
from centralization.extensions import db, babel
from centralization.routes import register_blueprints
from config.settings import config

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(name)s: %(message)s'


def get_locale():
    """Determine the best locale for the user."""
    from flask import current_app
    languages = current_app.config['LANGUAGES']
    lang = request.cookies.get('babel_translation')
    if lang in languages:
        return lang
    return request.accept_languages.best_match(languages)


def configure_logging(app):
    """Route the package loggers through one handler at LOG_LEVEL."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logger = logging.getLogger('centralization')
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    app.logger.setLevel(level)


def create_app(config_name=None, **overrides):
    """Application Factory."""
    load_dotenv()

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))
    app.config.update(overrides)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    babel.init_app(app, locale_selector=get_locale)

    # Context processor for templates
    @app.context_processor
    def inject_conf_var():
        return dict(get_locale=get_locale)

    register_error_handlers(app)

    # Register blueprints
    register_blueprints(app)

    # CLI Commands
    register_cli_commands(app)

    return app


def register_error_handlers(app):

    @app.errorhandler(UnauthorizedError)
    def handle_unauthorized(error):
        # ApiClient has already dropped the token and cached user
        from flask import session
        session.pop('report_wizard', None)
        app.logger.info("Session ended by backend: %s", error.reason or error.message)
        if error.force_logout:
            return redirect(url_for('auth.login', reason=error.reason))
        return redirect(url_for('auth.login'))


def register_cli_commands(app):
    """Register CLI commands."""

    @app.cli.command("init-db")
    def init_db_command():
        """Creates database tables."""
        db.create_all()
        click.echo("Initialized the database.")

    @app.cli.command("report-configs")
    def report_configs_command():
        """Lists the registered report types and their parameter fields."""
        from centralization.reports.configs import all_report_configs
        for report in all_report_configs():
            fields = ', '.join(f"{f.name}:{f.type}{'*' if f.required else ''}" for f in report.fields)
            click.echo(f"{report.id:<24} {report.title} [{fields}]")
